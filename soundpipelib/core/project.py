#!/usr/bin/env python3

import os
import sys
from rich.console import Console
from rich.table import Table
from soundpipelib.core import formats
from soundpipelib.core import settings
from soundpipelib.core import utils
from soundpipelib.core.executor import PipelineExecutor
from soundpipelib.core.loader import PipelineLoader
from soundpipelib.core.reconciler import DurationReconciler
from soundpipelib.core.reconciler import TerminalConfirmer
from soundpipelib.core.scanner import CandidateScanner
from soundpipelib.core.validator import PipelineValidator
from soundpipelib.media.probe import DurationProber
from soundpipelib.media.tools import MediaTools

#============================================

class SoundPipeProject():
	def __init__(self, yaml_file: str, working_dir: str = None, cli_settings: dict = None,
		format_strings: list = None, dry_run: bool = False, assume_yes: bool = False,
		allow_mismatch: bool = False, interactive: bool = None, tools=None,
		confirm=None, tagger=None, environ: dict = None):
		self.yaml_file = yaml_file
		self.working_dir = working_dir if working_dir is not None else os.getcwd()
		self.format_strings = list(format_strings or [])
		self.dry_run = dry_run
		self.allow_mismatch = allow_mismatch
		if interactive is None:
			interactive = sys.stdin.isatty() and not assume_yes
		self.interactive = interactive
		self.tools = tools
		self.confirm = confirm if confirm is not None else TerminalConfirmer(assume_yes=assume_yes)
		self.tagger = tagger
		self.pipeline = PipelineLoader(yaml_file).load()
		self.settings = settings.resolve_settings(cli_settings, self.pipeline.settings, environ)
		self.selected_formats = []
		if self.pipeline.has_transcode_step():
			self.selected_formats = formats.select_formats(self.format_strings,
				self.pipeline.formats, interactive=self.interactive)
		self.reconcile_result = None
		self.validation = None

	#============================
	def _get_tools(self) -> MediaTools:
		if self.tools is None:
			self.tools = MediaTools.locate()
		return self.tools

	#============================
	def _needs_probe(self) -> bool:
		for step in self.pipeline.steps:
			if step['type'] == 'ffmpeg' and step.get('input_duration') is not None:
				return True
		return False

	#============================
	def reconcile(self):
		if not self._needs_probe():
			utils.detail("no extract step declares an input duration; skipping duration check")
			self.reconcile_result = None
			return None
		prober = DurationProber(self._get_tools())
		scanner = CandidateScanner(prober, self.settings['max_workers'])
		reconciler = DurationReconciler(prober, scanner, self.confirm,
			tolerance=self.settings['duration_tolerance'],
			extensions=self.settings['scan_extensions'], working_dir=self.working_dir)
		self.reconcile_result = reconciler.reconcile(self.pipeline)
		self.pipeline = self.reconcile_result.pipeline
		self._print_reconcile_summary()
		return self.reconcile_result

	#============================
	def _print_reconcile_summary(self) -> None:
		if utils.is_quiet_mode() or self.reconcile_result is None:
			return
		table = Table(title="Duration check")
		table.add_column("Step", justify="right")
		table.add_column("Input")
		table.add_column("Expected", justify="right")
		table.add_column("Actual", justify="right")
		table.add_column("Result")
		for check in self.reconcile_result.checks:
			status = check['status']
			if check['replacement'] is not None:
				status = f"replaced by {check['replacement']}"
			table.add_row(str(check['step_index'] + 1), check['input'],
				f"{check['expected']:.2f}s", f"{check['actual']:.2f}s", status)
		Console().print(table)

	#============================
	def validate(self):
		known_durations = {}
		if self.reconcile_result is not None:
			known_durations = self.reconcile_result.known_durations
		validator = PipelineValidator(self.pipeline, self.selected_formats,
			working_dir=self.working_dir, known_durations=known_durations)
		self.validation = validator.validate()
		for warning in self.validation.warnings:
			utils.say(f"warning: {warning}")
		if not self.validation.is_valid():
			raise self.validation.error
		if self.reconcile_result is not None and self.reconcile_result.has_mismatches():
			for mismatch in self.reconcile_result.mismatches:
				utils.say(f"error: {mismatch}")
			if not self.allow_mismatch:
				raise self.reconcile_result.mismatches[0]
			utils.say("continuing with mismatched durations (--allow-duration-mismatch)")
		return self.validation

	#============================
	def run(self) -> dict:
		self.reconcile()
		self.validate()
		if self.dry_run:
			utils.say("dry run: validation complete")
			return {'steps_completed': 0, 'tag_failures': []}
		executor = PipelineExecutor(self.pipeline, self.selected_formats, self._get_tools(),
			working_dir=self.working_dir, tagger=self.tagger,
			max_workers=self.settings['max_workers'])
		summary = executor.run()
		utils.say(f"Pipeline complete: {summary['steps_completed']} step(s)")
		return summary
