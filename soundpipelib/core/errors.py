#!/usr/bin/env python3

EXIT_OK = 0
EXIT_CONFIG = 2
EXIT_EXECUTION = 3
EXIT_TOOL_MISSING = 4
EXIT_INTERRUPTED = 130

#============================================

class SoundPipeError(RuntimeError):
	exit_code = EXIT_CONFIG

#============================================

class ConfigError(SoundPipeError):
	pass

#============================================

class MalformedTimestamp(ConfigError):
	def __init__(self, text, reason: str = None):
		self.text = text
		self.reason = reason
		message = f"malformed timestamp '{text}'"
		if reason:
			message += f": {reason}"
		super().__init__(message)

#============================================

class MalformedPath(ConfigError):
	def __init__(self, path, reason: str):
		self.path = path
		self.reason = reason
		super().__init__(f"malformed path '{path}': {reason}")

#============================================

class GlobSyntaxError(ConfigError):
	def __init__(self, pattern: str, reason: str):
		self.pattern = pattern
		self.reason = reason
		super().__init__(f"invalid glob pattern '{pattern}': {reason}")

#============================================

class FormatSelectionError(ConfigError):
	pass

#============================================

class ProbeError(SoundPipeError):
	def __init__(self, path: str, reason: str):
		self.path = path
		self.reason = reason
		super().__init__(f"could not probe duration of '{path}': {reason}")

#============================================

class DurationMismatch(SoundPipeError):
	def __init__(self, step_index: int, input_path: str, expected: float,
		actual: float, reason: str):
		self.step_index = step_index
		self.input_path = input_path
		self.expected = expected
		self.actual = actual
		self.reason = reason
		message = (
			f"step {step_index + 1} (ffmpeg): duration mismatch for '{input_path}', "
			f"expected {expected:.2f}s, actual {actual:.2f}s "
			f"(difference {abs(actual - expected):.2f}s); {reason}"
		)
		super().__init__(message)

#============================================

class UnresolvedDependency(SoundPipeError):
	def __init__(self, step_index: int, step_type: str, pattern: str,
		detail: str = None):
		self.step_index = step_index
		self.step_type = step_type
		self.pattern = pattern
		if detail is None:
			detail = "does not exist and is not created by an earlier step"
		super().__init__(f"step {step_index + 1} ({step_type}): '{pattern}' {detail}")

#============================================

class ToolUnavailable(SoundPipeError):
	exit_code = EXIT_TOOL_MISSING

	def __init__(self, tool_name: str):
		self.tool_name = tool_name
		super().__init__(f"missing dependency: {tool_name}")

#============================================

class ExternalToolFailure(SoundPipeError):
	exit_code = EXIT_EXECUTION

	def __init__(self, command: str, returncode: int, stderr_text: str = ""):
		self.command = command
		self.returncode = returncode
		self.stderr_text = stderr_text
		message = f"command failed with exit code {returncode}: {command}"
		if stderr_text:
			message += f"\n{stderr_text}"
		super().__init__(message)

#============================================

class TaggingFailure(SoundPipeError):
	exit_code = EXIT_EXECUTION

	def __init__(self, path: str, reason: str):
		self.path = path
		self.reason = reason
		super().__init__(f"failed to tag '{path}': {reason}")

#============================================

class IOFailure(SoundPipeError):
	exit_code = EXIT_EXECUTION

	def __init__(self, path: str, reason: str):
		self.path = path
		self.reason = reason
		super().__init__(f"filesystem operation failed on '{path}': {reason}")

#============================================

class StepFailure(SoundPipeError):
	exit_code = EXIT_EXECUTION

	def __init__(self, step_index: int, step_type: str, cause: Exception):
		self.step_index = step_index
		self.step_type = step_type
		self.cause = cause
		super().__init__(f"step {step_index + 1} ({step_type}) failed: {cause}")
