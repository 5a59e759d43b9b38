#!/usr/bin/env python3

import shutil
import threading
from soundpipelib.core import errors
from soundpipelib.core import utils

#============================================

class MediaTools():
	"""
	Handle to the ffmpeg and ffprobe binaries, located once at startup and
	passed to the prober and executor.
	"""
	def __init__(self, ffmpeg_path: str, ffprobe_path: str):
		self.ffmpeg_path = ffmpeg_path
		self.ffprobe_path = ffprobe_path
		self._encoders = None
		self._encoder_lock = threading.Lock()

	#============================
	@classmethod
	def locate(cls, ffmpeg_name: str = 'ffmpeg', ffprobe_name: str = 'ffprobe'):
		ffmpeg_path = shutil.which(ffmpeg_name)
		if ffmpeg_path is None:
			raise errors.ToolUnavailable(ffmpeg_name)
		ffprobe_path = shutil.which(ffprobe_name)
		if ffprobe_path is None:
			raise errors.ToolUnavailable(ffprobe_name)
		return cls(ffmpeg_path, ffprobe_path)

	#============================
	def run_ffmpeg(self, args: list, cwd: str = None) -> None:
		cmd = [self.ffmpeg_path, '-hide_banner', '-nostdin', '-loglevel', 'error']
		cmd += list(args)
		utils.run_process(cmd, cwd=cwd)

	#============================
	def run_ffprobe(self, args: list, cwd: str = None) -> str:
		cmd = [self.ffprobe_path] + list(args)
		proc = utils.run_process(cmd, cwd=cwd, echo=False)
		return proc.stdout

	#============================
	def has_encoder(self, encoder_name: str) -> bool:
		with self._encoder_lock:
			if self._encoders is None:
				proc = utils.run_process([self.ffmpeg_path, '-hide_banner', '-encoders'], echo=False)
				self._encoders = self._parse_encoders(proc.stdout)
		return encoder_name in self._encoders

	#============================
	def _parse_encoders(self, text: str) -> set:
		# legend ends at the '------' line, rows look like " A....D aac_at  AAC (AudioToolbox)"
		names = set()
		in_rows = False
		for line in text.splitlines():
			parts = line.split()
			if len(parts) == 0:
				continue
			if parts[0] == '------':
				in_rows = True
				continue
			if in_rows and len(parts) >= 2 and len(parts[0]) == 6:
				names.add(parts[1])
		return names
