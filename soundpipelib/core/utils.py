#!/usr/bin/env python3

import os
import shlex
import subprocess
import threading
from soundpipelib.core import errors

_QUIET_MODE = False
_VERBOSE_MODE = False
_PRINT_LOCK = threading.Lock()

#============================================

def set_quiet_mode(enabled: bool) -> None:
	global _QUIET_MODE
	_QUIET_MODE = bool(enabled)

#============================================

def is_quiet_mode() -> bool:
	return _QUIET_MODE

#============================================

def set_verbose_mode(enabled: bool) -> None:
	global _VERBOSE_MODE
	_VERBOSE_MODE = bool(enabled)

#============================================

def is_verbose_mode() -> bool:
	return _VERBOSE_MODE

#============================================

def say(message: str) -> None:
	if _QUIET_MODE:
		return
	with _PRINT_LOCK:
		print(message)

#============================================

def detail(message: str) -> None:
	if _QUIET_MODE or not _VERBOSE_MODE:
		return
	with _PRINT_LOCK:
		print(f"  {message}")

#============================================

def run_process(cmd: list, cwd: str = None, echo: bool = True) -> subprocess.CompletedProcess:
	"""
	Run an external command, echoing it first.

	Args:
		cmd: Command list to execute.
		cwd: Optional working directory.
		echo: Print the command; otherwise only in verbose mode.

	Returns:
		subprocess.CompletedProcess: The completed process.
	"""
	showcmd = shlex.join(cmd)
	if echo:
		say(f"CMD: '{showcmd}'")
	else:
		detail(f"CMD: '{showcmd}'")
	try:
		proc = subprocess.run(cmd, cwd=cwd, capture_output=True, text=True)
	except FileNotFoundError as exc:
		raise errors.ToolUnavailable(cmd[0]) from exc
	if proc.returncode != 0:
		stderr_text = (proc.stderr or "").strip()
		raise errors.ExternalToolFailure(showcmd, proc.returncode, stderr_text)
	return proc

#============================================

def ensure_file_exists(filepath: str) -> None:
	if not os.path.isfile(filepath):
		raise errors.IOFailure(filepath, "expected output file was not created")
	return

#============================================

def remove_path_quietly(filepath: str) -> bool:
	if filepath is None or not os.path.lexists(filepath):
		return False
	try:
		os.remove(filepath)
	except OSError as exc:
		say(f"warning: could not remove {filepath}: {exc}")
		return False
	return True
