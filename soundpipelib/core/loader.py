#!/usr/bin/env python3

import copy
import os
import yaml
from soundpipelib.core import errors

STEP_TYPES = ('ffmpeg', 'split', 'transcode', 'tag', 'cleanup')
TAG_TEXT_KEYS = ('title', 'artist', 'album', 'album_artist', 'genre', 'comment')
TAG_NUMBER_KEYS = ('track', 'track_total', 'disk', 'disk_total', 'year')
MAX_DOCUMENT_BYTES = 10 ** 7

#============================================

class PipelineData():
	def __init__(self, yaml_file: str = None, formats: dict = None,
		settings: dict = None, steps: tuple = ()):
		self.yaml_file = yaml_file
		self.formats = formats if formats is not None else {'available': [], 'default': None}
		self.settings = settings if settings is not None else {}
		self.steps = tuple(steps)

	#============================
	def has_transcode_step(self) -> bool:
		return any(step['type'] == 'transcode' for step in self.steps)

	#============================
	def replace_inputs(self, substitutions: dict):
		"""
		Build a new pipeline with some step inputs rewritten.

		Args:
			substitutions: step index -> new input path.

		Returns:
			PipelineData: A new pipeline; self is left unchanged.
		"""
		steps = []
		for index, step in enumerate(self.steps):
			new_step = copy.deepcopy(step)
			if index in substitutions:
				if 'input' not in new_step:
					raise errors.ConfigError(f"step {index + 1} ({step['type']}) has no input to replace")
				new_step['input'] = substitutions[index]
			steps.append(new_step)
		return PipelineData(self.yaml_file, copy.deepcopy(self.formats),
			copy.deepcopy(self.settings), tuple(steps))

#============================================

class PipelineLoader():
	def __init__(self, yaml_file: str):
		self.yaml_file = yaml_file

	#============================
	def load(self) -> PipelineData:
		data = self._load_yaml()
		return self.parse_document(data)

	#============================
	def _load_yaml(self) -> dict:
		if not os.path.isfile(self.yaml_file):
			raise errors.ConfigError(f"config file not found: {self.yaml_file}")
		file_size = os.path.getsize(self.yaml_file)
		if file_size > MAX_DOCUMENT_BYTES:
			raise errors.ConfigError("yaml file is larger than 10MB")
		try:
			with open(self.yaml_file, 'r', encoding='utf-8') as data_file:
				data = yaml.safe_load(data_file)
		except yaml.YAMLError as exc:
			raise errors.ConfigError(f"could not parse {self.yaml_file}: {exc}") from exc
		if not isinstance(data, dict):
			raise errors.ConfigError("pipeline yaml must be a mapping at the top level")
		return data

	#============================
	def parse_document(self, data: dict) -> PipelineData:
		if not isinstance(data, dict):
			raise errors.ConfigError("pipeline yaml must be a mapping at the top level")
		version = data.get('soundpipe')
		if version is not None and version != 1:
			raise errors.ConfigError("soundpipe must be set to 1 when present")
		for key in data.keys():
			if key not in ('soundpipe', 'formats', 'settings', 'steps'):
				raise errors.ConfigError(f"unknown top-level key: {key}")
		steps = self._parse_steps(data.get('steps'))
		formats = self._parse_formats(data.get('formats'))
		settings = data.get('settings') or {}
		if not isinstance(settings, dict):
			raise errors.ConfigError("settings must be a mapping")
		pipeline = PipelineData(self.yaml_file, formats, settings, steps)
		if pipeline.has_transcode_step() and len(formats['available']) == 0:
			raise errors.ConfigError("formats.available is required when a transcode step is present")
		return pipeline

	#============================
	def _parse_formats(self, formats) -> dict:
		if formats is None:
			return {'available': [], 'default': None}
		if not isinstance(formats, dict):
			raise errors.ConfigError("formats must be a mapping")
		available_raw = formats.get('available', [])
		if not isinstance(available_raw, list):
			raise errors.ConfigError("formats.available must be a list")
		available = []
		seen = set()
		for option in available_raw:
			parsed = self._parse_format_option(option)
			if parsed['format'] in seen:
				raise errors.ConfigError(f"format {parsed['format']} is listed twice")
			seen.add(parsed['format'])
			available.append(parsed)
		default = formats.get('default')
		if default is not None:
			default = str(default).lower()
			if default not in seen:
				raise errors.ConfigError(f"formats.default {default} is not in formats.available")
		return {'available': available, 'default': default}

	#============================
	def _parse_format_option(self, option) -> dict:
		if isinstance(option, str):
			option = {'format': option}
		if not isinstance(option, dict) or option.get('format') is None:
			raise errors.ConfigError("formats.available entries must include format")
		name = str(option['format']).lower()
		bitrates = option.get('bitrates')
		if bitrates is not None:
			if not isinstance(bitrates, list) or len(bitrates) == 0:
				raise errors.ConfigError(f"format {name}: bitrates must be a non-empty list")
			bitrates = [str(item) for item in bitrates]
		default_bitrate = option.get('default_bitrate')
		if default_bitrate is not None:
			default_bitrate = str(default_bitrate)
			if bitrates is None or default_bitrate not in bitrates:
				raise errors.ConfigError(f"format {name}: default_bitrate must be one of bitrates")
		bit_depths = option.get('bit_depths')
		if bit_depths is not None:
			if not isinstance(bit_depths, list) or len(bit_depths) == 0:
				raise errors.ConfigError(f"format {name}: bit_depths must be a non-empty list")
			bit_depths = [self._coerce_int(item, f"format {name} bit_depths") for item in bit_depths]
		default_bit_depth = option.get('default_bit_depth')
		if default_bit_depth is not None:
			default_bit_depth = self._coerce_int(default_bit_depth, f"format {name} default_bit_depth")
			if bit_depths is not None and default_bit_depth not in bit_depths:
				raise errors.ConfigError(f"format {name}: default_bit_depth must be one of bit_depths")
		return {
			'format': name,
			'bitrates': bitrates,
			'default_bitrate': default_bitrate,
			'bit_depths': bit_depths,
			'default_bit_depth': default_bit_depth,
		}

	#============================
	def _parse_steps(self, steps) -> tuple:
		if not isinstance(steps, list) or len(steps) == 0:
			raise errors.ConfigError("steps must be a non-empty list")
		parsed = []
		for index, step in enumerate(steps):
			parsed.append(self._parse_step(index, step))
		return tuple(parsed)

	#============================
	def _parse_step(self, index: int, step) -> dict:
		label = f"steps[{index}]"
		if not isinstance(step, dict):
			raise errors.ConfigError(f"{label} must be a mapping")
		step_type = step.get('type')
		if step_type is None:
			raise errors.ConfigError(f"{label} is missing type")
		step_type = str(step_type).lower()
		if step_type == 'ffmpeg':
			return self._parse_ffmpeg_step(label, step)
		if step_type == 'split':
			return self._parse_split_step(label, step)
		if step_type == 'transcode':
			return self._parse_transcode_step(label, step)
		if step_type == 'tag':
			return self._parse_tag_step(label, step)
		if step_type == 'cleanup':
			return self._parse_cleanup_step(label, step)
		raise errors.ConfigError(f"{label}: unsupported step type {step_type}")

	#============================
	def _check_keys(self, label: str, step: dict, allowed: tuple) -> None:
		for key in step.keys():
			if key != 'type' and key not in allowed:
				raise errors.ConfigError(f"{label}: unknown key {key}")

	#============================
	def _require_str(self, label: str, step: dict, key: str, default: str = None) -> str:
		value = step.get(key, default)
		if value is None:
			raise errors.ConfigError(f"{label}: {key} is required")
		if not isinstance(value, (str, int, float)) or isinstance(value, bool):
			raise errors.ConfigError(f"{label}: {key} must be a string")
		value = str(value)
		if value.strip() == '':
			raise errors.ConfigError(f"{label}: {key} must not be empty")
		return value

	#============================
	def _coerce_int(self, value, label: str) -> int:
		if isinstance(value, bool):
			raise errors.ConfigError(f"{label} must be an integer")
		try:
			return int(value)
		except (TypeError, ValueError) as exc:
			raise errors.ConfigError(f"{label} must be an integer") from exc

	#============================
	def _parse_ffmpeg_step(self, label: str, step: dict) -> dict:
		self._check_keys(label, step, ('input', 'output', 'args', 'input_duration'))
		args = step.get('args', [])
		if args is None:
			args = []
		if not isinstance(args, list):
			raise errors.ConfigError(f"{label}: args must be a list")
		input_duration = step.get('input_duration')
		if input_duration is not None and not isinstance(input_duration, (str, int, float)):
			raise errors.ConfigError(f"{label}: input_duration must be a timestamp string")
		return {
			'type': 'ffmpeg',
			'input': self._require_str(label, step, 'input'),
			'output': self._require_str(label, step, 'output'),
			'args': [str(arg) for arg in args],
			'input_duration': input_duration,
		}

	#============================
	def _parse_split_step(self, label: str, step: dict) -> dict:
		self._check_keys(label, step, ('input', 'output_dir', 'files'))
		files = step.get('files')
		if not isinstance(files, list) or len(files) == 0:
			raise errors.ConfigError(f"{label}: files must be a non-empty list")
		split_files = []
		for file_index, entry in enumerate(files):
			entry_label = f"{label}.files[{file_index}]"
			if not isinstance(entry, dict):
				raise errors.ConfigError(f"{entry_label} must be a mapping")
			for key in entry.keys():
				if key not in ('file', 'start', 'end'):
					raise errors.ConfigError(f"{entry_label}: unknown key {key}")
			if entry.get('start') is None or entry.get('end') is None:
				raise errors.ConfigError(f"{entry_label}: start and end are required")
			filename = entry.get('file')
			split_files.append({
				'file': '' if filename is None else str(filename),
				'start': entry.get('start'),
				'end': entry.get('end'),
			})
		return {
			'type': 'split',
			'input': self._require_str(label, step, 'input'),
			'output_dir': self._require_str(label, step, 'output_dir', '.'),
			'files': split_files,
		}

	#============================
	def _parse_transcode_step(self, label: str, step: dict) -> dict:
		self._check_keys(label, step, ('input_dir', 'output_dir', 'files'))
		files = step.get('files')
		if not isinstance(files, list) or len(files) == 0:
			raise errors.ConfigError(f"{label}: files must be a non-empty list")
		return {
			'type': 'transcode',
			'input_dir': self._require_str(label, step, 'input_dir', '.'),
			'output_dir': self._require_str(label, step, 'output_dir', '.'),
			'files': [str(item) for item in files],
		}

	#============================
	def _parse_tag_step(self, label: str, step: dict) -> dict:
		self._check_keys(label, step, ('input_dir', 'files', 'optional'))
		files = step.get('files')
		if not isinstance(files, list) or len(files) == 0:
			raise errors.ConfigError(f"{label}: files must be a non-empty list")
		optional = step.get('optional', False)
		if not isinstance(optional, bool):
			raise errors.ConfigError(f"{label}: optional must be true or false")
		tag_files = []
		for file_index, entry in enumerate(files):
			tag_files.append(self._parse_tag_entry(f"{label}.files[{file_index}]", entry))
		return {
			'type': 'tag',
			'input_dir': self._require_str(label, step, 'input_dir', '.'),
			'optional': optional,
			'files': tag_files,
		}

	#============================
	def _parse_tag_entry(self, label: str, entry) -> dict:
		if not isinstance(entry, dict):
			raise errors.ConfigError(f"{label} must be a mapping")
		allowed = ('file', 'album_art') + TAG_TEXT_KEYS + TAG_NUMBER_KEYS
		for key in entry.keys():
			if key not in allowed:
				raise errors.ConfigError(f"{label}: unknown tag {key}")
		tags = {}
		for key in TAG_TEXT_KEYS:
			if entry.get(key) is not None:
				tags[key] = str(entry[key])
		for key in TAG_NUMBER_KEYS:
			if entry.get(key) is not None:
				tags[key] = self._coerce_int(entry[key], f"{label}.{key}")
		album_art = entry.get('album_art')
		return {
			'file': self._require_str(label, entry, 'file'),
			'tags': tags,
			'album_art': None if album_art is None else str(album_art),
		}

	#============================
	def _parse_cleanup_step(self, label: str, step: dict) -> dict:
		self._check_keys(label, step, ('files',))
		files = step.get('files')
		if not isinstance(files, list) or len(files) == 0:
			raise errors.ConfigError(f"{label}: files must be a non-empty list")
		return {
			'type': 'cleanup',
			'files': [str(item) for item in files],
		}
