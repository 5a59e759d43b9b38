#!/usr/bin/env python3

import math
import os
from soundpipelib.core import errors

PROBE_ARGS = [
	'-v', 'error',
	'-show_entries', 'format=duration',
	'-of', 'default=noprint_wrappers=1:nokey=1',
]

#============================================

class DurationProber():
	def __init__(self, tools):
		self.tools = tools

	#============================
	def probe(self, path: str) -> float:
		"""
		Read the container duration of a media file.

		Args:
			path: Media file path.

		Returns:
			float: Duration in seconds.
		"""
		if not os.path.isfile(path):
			raise errors.ProbeError(path, "file not found")
		try:
			output = self.tools.run_ffprobe(PROBE_ARGS + [path])
		except errors.ExternalToolFailure as exc:
			reason = exc.stderr_text or f"ffprobe exited with code {exc.returncode}"
			raise errors.ProbeError(path, reason) from exc
		return parse_duration_output(path, output)

#============================================

def parse_duration_output(path: str, output: str) -> float:
	lines = [line.strip() for line in (output or '').splitlines() if line.strip()]
	if len(lines) == 0:
		raise errors.ProbeError(path, "ffprobe reported no duration")
	text = lines[0]
	if text == 'N/A':
		raise errors.ProbeError(path, "duration is not available")
	try:
		duration = float(text)
	except ValueError as exc:
		raise errors.ProbeError(path, f"unparsable duration '{text}'") from exc
	if math.isnan(duration) or math.isinf(duration) or duration < 0:
		raise errors.ProbeError(path, f"invalid duration '{text}'")
	return duration
