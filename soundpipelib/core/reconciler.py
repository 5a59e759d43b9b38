#!/usr/bin/env python3

"""
Duration reconciliation: compare each extract step's declared input
duration with the probed one and offer a closer file from the same
directory when they disagree.
"""

import os
import sys
from rich.console import Console
from rich.prompt import Confirm
from soundpipelib.core import errors
from soundpipelib.core import patterns
from soundpipelib.core import timecode
from soundpipelib.core import utils

#============================================

class ReconcileResult():
	def __init__(self, pipeline):
		self.pipeline = pipeline
		self.checks = []
		self.mismatches = []
		self.substitutions = {}
		self.known_durations = {}

	#============================
	def has_mismatches(self) -> bool:
		return len(self.mismatches) > 0

#============================================

class TerminalConfirmer():
	def __init__(self, assume_yes: bool = False, console: Console = None, stdin=None):
		self.assume_yes = assume_yes
		self.console = console if console is not None else Console()
		self.stdin = stdin if stdin is not None else sys.stdin

	#============================
	def __call__(self, candidate) -> bool:
		self.console.print(
			f"Suggested replacement: [bold]{candidate.path}[/bold] "
			f"({candidate.duration:.2f}s, difference {candidate.delta:.2f}s)")
		if self.assume_yes:
			self.console.print("Accepting replacement (--yes)")
			return True
		if not self.stdin.isatty():
			self.console.print("stdin is not interactive; keeping the original input")
			return False
		return Confirm.ask("Use this file instead?", default=True, console=self.console)

#============================================

class DurationReconciler():
	def __init__(self, prober, scanner, confirm, tolerance: float = 3.0,
		extensions=('mkv',), working_dir: str = '.'):
		self.prober = prober
		self.scanner = scanner
		self.confirm = confirm
		self.tolerance = tolerance
		self.extensions = tuple(extensions)
		self.working_dir = working_dir

	#============================
	def reconcile(self, pipeline) -> ReconcileResult:
		"""
		Check every extract step that declares an input duration.

		Args:
			pipeline: Loaded PipelineData.

		Returns:
			ReconcileResult: New pipeline plus checks and unresolved mismatches.
		"""
		result = ReconcileResult(pipeline)
		for index, step in enumerate(pipeline.steps):
			if step['type'] != 'ffmpeg':
				continue
			if step.get('input_duration') is None:
				continue
			self._reconcile_step(index, step, result)
		if len(result.substitutions) > 0:
			result.pipeline = pipeline.replace_inputs(result.substitutions)
		return result

	#============================
	def _reconcile_step(self, index: int, step: dict, result: ReconcileResult) -> None:
		expected = timecode.parse(step['input_duration'])
		if patterns.is_absolute(step['input']):
			input_key = os.path.normpath(step['input'])
			input_abs = input_key
			scan_dir = os.path.dirname(input_abs)
		else:
			input_key = patterns.normalize_path(step['input'])
			input_abs = os.path.join(self.working_dir, input_key)
			rel_dir = os.path.dirname(input_key)
			scan_dir = os.path.join(self.working_dir, rel_dir) if rel_dir else self.working_dir
		actual = self.prober.probe(input_abs)
		delta = abs(actual - expected)
		check = {
			'step_index': index,
			'input': input_key,
			'expected': expected,
			'actual': actual,
			'delta': delta,
			'status': 'ok',
			'replacement': None,
		}
		result.checks.append(check)
		if delta <= self.tolerance:
			utils.detail(f"step {index + 1}: {input_key} duration {actual:.2f}s matches")
			result.known_durations[input_key] = actual
			return
		utils.say(
			f"Step {index + 1}: duration mismatch for {input_key}, "
			f"expected {expected:.2f}s, actual {actual:.2f}s (difference {delta:.2f}s)")
		candidates = self.scanner.scan(scan_dir, expected, self.extensions, exclude=[input_abs])
		best = next(candidates, None)
		if best is None or best.delta > self.tolerance:
			check['status'] = 'mismatch'
			result.known_durations[input_key] = actual
			result.mismatches.append(errors.DurationMismatch(index, input_key, expected,
				actual, "no candidate within tolerance"))
			return
		if patterns.is_absolute(input_key):
			replacement = os.path.join(scan_dir, os.path.basename(best.path))
		else:
			replacement = patterns.join_relative(os.path.dirname(input_key), os.path.basename(best.path))
		if not self.confirm(best):
			check['status'] = 'declined'
			result.known_durations[input_key] = actual
			result.mismatches.append(errors.DurationMismatch(index, input_key, expected,
				actual, f"replacement {replacement} was declined"))
			return
		utils.say(f"Step {index + 1}: using {replacement} instead of {input_key}")
		check['status'] = 'replaced'
		check['replacement'] = replacement
		result.substitutions[index] = replacement
		result.known_durations[replacement] = best.duration
