#!/usr/bin/env python3

import os
import shutil
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import as_completed
from tqdm import tqdm
from soundpipelib.core import errors
from soundpipelib.core import formats
from soundpipelib.core import patterns
from soundpipelib.core import timecode
from soundpipelib.core import utils
from soundpipelib.media import ffmpeg_commands
from soundpipelib.media import tagging

#============================================

def partial_path(final_path: str) -> str:
	directory, name = os.path.split(final_path)
	stem, extension = os.path.splitext(name)
	return os.path.join(directory, f".{stem}.partial{extension}")

#============================================

class PipelineExecutor():
	def __init__(self, pipeline, selected_formats: list, tools, working_dir: str = '.',
		tagger=None, max_workers: int = 4):
		self.pipeline = pipeline
		self.selected_formats = list(selected_formats or [])
		self.tools = tools
		self.working_dir = working_dir
		self.tagger = tagger
		self.max_workers = max_workers
		self.tag_failures = []
		self._created = []
		self._created_lock = threading.Lock()
		self._progress_lock = threading.Lock()

	#============================
	def run(self) -> dict:
		"""
		Execute every step in order against the working directory.

		Returns:
			dict: Summary with completed step count and tag failures.
		"""
		total = len(self.pipeline.steps)
		for index, step in enumerate(self.pipeline.steps):
			utils.say(f"Step {index + 1}/{total}: {step['type']}")
			self._created = []
			try:
				self._run_step(index, step)
			except (KeyboardInterrupt, errors.ToolUnavailable):
				self._cleanup_current_step()
				raise
			except (errors.ExternalToolFailure, errors.IOFailure) as exc:
				self._cleanup_current_step()
				raise errors.StepFailure(index, step['type'], exc) from exc
		return {
			'steps_completed': total,
			'tag_failures': list(self.tag_failures),
		}

	#============================
	def _run_step(self, index: int, step: dict) -> None:
		step_type = step['type']
		if step_type == 'ffmpeg':
			self._run_ffmpeg(step)
		elif step_type == 'split':
			self._run_split(step)
		elif step_type == 'transcode':
			self._run_transcode(step)
		elif step_type == 'tag':
			self._run_tag(index, step)
		elif step_type == 'cleanup':
			self._run_cleanup(step)
		else:
			raise errors.ConfigError(f"step {index + 1}: unsupported step type {step_type}")

	#============================
	def _abs(self, rel_path: str) -> str:
		rel_path = patterns.normalize_path(rel_path)
		if rel_path == '':
			return self.working_dir
		return os.path.join(self.working_dir, rel_path)

	#============================
	def _track(self, path: str) -> None:
		with self._created_lock:
			self._created.append(path)

	#============================
	def _cleanup_current_step(self) -> None:
		with self._created_lock:
			created = list(self._created)
			self._created = []
		for path in reversed(created):
			if utils.remove_path_quietly(path):
				utils.detail(f"removed {path}")

	#============================
	def _make_dirs(self, directory: str) -> None:
		try:
			os.makedirs(directory, exist_ok=True)
		except OSError as exc:
			raise errors.IOFailure(directory, str(exc)) from exc

	#============================
	def _begin_output(self, final_path: str) -> str:
		self._make_dirs(os.path.dirname(final_path) or self.working_dir)
		partial = partial_path(final_path)
		self._track(partial)
		return partial

	#============================
	def _finish_output(self, partial: str, final_path: str) -> None:
		utils.ensure_file_exists(partial)
		try:
			os.replace(partial, final_path)
		except OSError as exc:
			raise errors.IOFailure(final_path, str(exc)) from exc
		self._track(final_path)

	#============================
	def _matching_files(self, pattern: str) -> list:
		matches = patterns.resolve_on_disk(self.working_dir, pattern)
		return [path for path in matches if os.path.isfile(self._abs(path))]

	#============================
	def _source(self, path: str) -> str:
		if patterns.is_absolute(path):
			return os.path.normpath(path)
		return self._abs(path)

	#============================
	def _run_ffmpeg(self, step: dict) -> None:
		input_file = self._source(step['input'])
		output_file = self._abs(step['output'])
		partial = self._begin_output(output_file)
		self.tools.run_ffmpeg(ffmpeg_commands.extract_args(input_file, partial, step['args']))
		self._finish_output(partial, output_file)

	#============================
	def _run_split(self, step: dict) -> None:
		input_file = self._abs(step['input'])
		output_dir = patterns.normalize_path(step['output_dir'])
		segments = []
		finals = []
		for entry in step['files']:
			final_path = self._abs(patterns.join_relative(output_dir, entry['file']))
			partial = self._begin_output(final_path)
			start = timecode.parse(entry['start'])
			end = timecode.parse(entry['end'])
			segments.append((start, end, partial))
			finals.append((partial, final_path))
		self.tools.run_ffmpeg(ffmpeg_commands.split_args(input_file, segments))
		for partial, final_path in finals:
			self._finish_output(partial, final_path)

	#============================
	def _aac_encoder(self) -> str:
		if not any(selected['format'] == 'aac' for selected in self.selected_formats):
			return 'aac'
		if self.tools.has_encoder('aac_at'):
			utils.detail("using AudioToolbox AAC encoder")
			return 'aac_at'
		return 'aac'

	#============================
	def _run_transcode(self, step: dict) -> None:
		input_dir = patterns.normalize_path(step['input_dir'])
		output_dir = patterns.normalize_path(step['output_dir'])
		if len(self.selected_formats) == 0:
			raise errors.ConfigError("transcode step has no output format selected")
		tasks = []
		# output path -> input path
		planned = {}
		for pattern in step['files']:
			full_pattern = patterns.join_relative(input_dir, pattern)
			matches = self._matching_files(full_pattern)
			if len(matches) == 0:
				raise errors.IOFailure(full_pattern, "no input files matched")
			for input_rel in matches:
				for selected in self.selected_formats:
					output_rel = patterns.join_relative(output_dir,
						formats.output_name(input_rel, selected))
					if output_rel in planned:
						if planned[output_rel] == input_rel:
							continue
						raise errors.ConfigError(
							f"{planned[output_rel]} and {input_rel} would both be written to {output_rel}")
					planned[output_rel] = input_rel
					tasks.append((input_rel, output_rel, selected))
		aac_encoder = self._aac_encoder()
		workers = min(self.max_workers, len(tasks))
		progress = tqdm(total=len(tasks), desc="transcode", unit="file",
			disable=utils.is_quiet_mode())
		try:
			with ThreadPoolExecutor(max_workers=workers) as pool:
				futures = [
					pool.submit(self._transcode_one, input_rel, output_rel, selected,
						aac_encoder, progress)
					for (input_rel, output_rel, selected) in tasks
				]
				try:
					for future in as_completed(futures):
						future.result()
				except BaseException:
					for future in futures:
						future.cancel()
					raise
		finally:
			progress.close()

	#============================
	def _transcode_one(self, input_rel: str, output_rel: str, selected: dict,
		aac_encoder: str, progress) -> None:
		final_path = self._abs(output_rel)
		partial = self._begin_output(final_path)
		cmd = ffmpeg_commands.transcode_args(self._abs(input_rel), partial, selected, aac_encoder)
		self.tools.run_ffmpeg(cmd)
		self._finish_output(partial, final_path)
		with self._progress_lock:
			progress.update(1)

	#============================
	def _run_tag(self, index: int, step: dict) -> None:
		if self.tagger is None:
			self.tagger = tagging.MutagenTagger()
		input_dir = patterns.normalize_path(step['input_dir'])
		tagged = 0
		failures = []
		for entry in step['files']:
			pattern = patterns.join_relative(input_dir, entry['file'])
			matches = self._matching_files(pattern)
			if len(matches) == 0:
				if step['optional']:
					utils.say(f"warning: '{pattern}' matched no files")
					continue
				raise errors.IOFailure(pattern, "no files to tag")
			tags = dict(entry['tags'])
			if entry['album_art'] is not None:
				art_path = self._abs(entry['album_art'])
				if os.path.isfile(art_path):
					tags['album_art'] = art_path
				else:
					utils.say(f"warning: album art {entry['album_art']} not found, skipping artwork")
			for rel_path in matches:
				try:
					self.tagger.apply(self._abs(rel_path), tags)
				except errors.TaggingFailure as exc:
					failures.append(exc)
					utils.say(f"warning: {exc}")
					continue
				except Exception as exc:
					# any tagger error stays with its file
					failure = errors.TaggingFailure(self._abs(rel_path), f"{type(exc).__name__}: {exc}")
					failure.__cause__ = exc
					failures.append(failure)
					utils.say(f"warning: {failure}")
					continue
				tagged += 1
				utils.detail(f"tagged {rel_path}")
		utils.say(f"Tagged {tagged} file(s), {len(failures)} failure(s)")
		self.tag_failures += failures

	#============================
	def _remove(self, path: str) -> None:
		if os.path.isdir(path) and not os.path.islink(path):
			shutil.rmtree(path)
		else:
			os.remove(path)

	#============================
	def _run_cleanup(self, step: dict) -> None:
		attempted = 0
		failed = 0
		last_error = None
		for pattern in step['files']:
			normalized = patterns.normalize_path(pattern)
			if normalized == '':
				raise errors.IOFailure(pattern, "refusing to remove the working directory")
			if os.path.lexists(self._abs(normalized)):
				matches = [normalized]
			elif patterns.has_magic(normalized):
				matches = patterns.resolve_on_disk(self.working_dir, normalized)
			else:
				matches = []
			if len(matches) == 0:
				utils.detail(f"nothing to remove for {normalized}")
				continue
			for rel_path in matches:
				attempted += 1
				try:
					self._remove(self._abs(rel_path))
				except OSError as exc:
					failed += 1
					last_error = exc
					utils.say(f"warning: could not remove {rel_path}: {exc}")
					continue
				utils.detail(f"removed {rel_path}")
		if attempted > 0 and failed == attempted:
			raise errors.IOFailure(step['files'][0], f"every removal failed, last error: {last_error}")
