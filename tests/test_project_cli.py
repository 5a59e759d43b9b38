#!/usr/bin/env python3

"""
Pytest coverage for the project runner and CLI exit codes.
"""

# Standard Library
import os
import sys
import tempfile

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
import soundpipe_cli
from soundpipelib.core import errors
from soundpipelib.core import utils
from soundpipelib.core.project import SoundPipeProject

#============================================

class FakeTools():
	def __init__(self, durations: dict):
		self.durations = durations
		self.ffmpeg_calls = []

	def run_ffprobe(self, args: list, cwd: str = None) -> str:
		return f"{self.durations[os.path.basename(args[-1])]}\n"

	def run_ffmpeg(self, args: list, cwd: str = None) -> None:
		self.ffmpeg_calls.append(list(args))
		with open(args[-1], "w") as handle:
			handle.write("audio")

	def has_encoder(self, name: str) -> bool:
		return False

#============================================

def _write(root: str, rel_path: str, text: str = "x") -> str:
	path = os.path.join(root, rel_path)
	os.makedirs(os.path.dirname(path), exist_ok=True)
	with open(path, "w") as handle:
		handle.write(text)
	return path

#============================================

EXTRACT_YAML = """
steps:
  - type: ffmpeg
    input: movie.mkv
    output: audio.wav
    input_duration: "19:50"
"""

#============================================

@pytest.fixture(autouse=True)
def quiet_output():
	utils.set_quiet_mode(True)
	yield
	utils.set_quiet_mode(False)
	utils.set_verbose_mode(False)

#============================================

def test_cli_dry_run_succeeds_without_tools() -> None:
	"""
	Ensure a dry run with no duration checks never needs ffmpeg.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		_write(temp_dir, "a.wav")
		yaml_path = _write(temp_dir, "soundpipeline.yml",
			"steps:\n  - type: cleanup\n    files: [a.wav]\n")
		code = soundpipe_cli.main([yaml_path, "-w", temp_dir, "-n", "-q"])
		assert code == errors.EXIT_OK
		assert os.path.exists(os.path.join(temp_dir, "a.wav"))

#============================================

def test_cli_config_error_exit_code() -> None:
	"""
	Ensure a broken document exits with the configuration code.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		yaml_path = _write(temp_dir, "soundpipeline.yml", "steps: nope\n")
		code = soundpipe_cli.main([yaml_path, "-w", temp_dir, "-q"])
		assert code == errors.EXIT_CONFIG

#============================================

def test_cli_validation_error_exit_code() -> None:
	"""
	Ensure an unresolved input exits with the configuration code.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		yaml_path = _write(temp_dir, "soundpipeline.yml",
			"steps:\n  - type: split\n    input: missing.wav\n    files:\n"
			"      - {file: a.wav, start: '0:00', end: '0:10'}\n")
		code = soundpipe_cli.main([yaml_path, "-w", temp_dir, "-n", "-q"])
		assert code == errors.EXIT_CONFIG

#============================================

def test_unresolved_mismatch_blocks_execution() -> None:
	"""
	Ensure a duration mismatch stops the run before any step executes.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		_write(temp_dir, "movie.mkv")
		yaml_path = _write(temp_dir, "soundpipeline.yml", EXTRACT_YAML)
		tools = FakeTools({'movie.mkv': 1200.0})
		project = SoundPipeProject(yaml_path, working_dir=temp_dir, tools=tools,
			confirm=lambda candidate: True, interactive=False, environ={})
		with pytest.raises(errors.DurationMismatch):
			project.run()
		assert tools.ffmpeg_calls == []

#============================================

def test_allowed_mismatch_runs_pipeline() -> None:
	"""
	Ensure --allow-duration-mismatch continues into execution.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		_write(temp_dir, "movie.mkv")
		yaml_path = _write(temp_dir, "soundpipeline.yml", EXTRACT_YAML)
		tools = FakeTools({'movie.mkv': 1200.0})
		project = SoundPipeProject(yaml_path, working_dir=temp_dir, tools=tools,
			allow_mismatch=True, interactive=False, environ={})
		summary = project.run()
		assert summary['steps_completed'] == 1
		assert os.path.isfile(os.path.join(temp_dir, "audio.wav"))

#============================================

def test_accepted_candidate_is_extracted() -> None:
	"""
	Ensure the confirmed replacement is what ffmpeg reads.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		_write(temp_dir, "movie.mkv")
		_write(temp_dir, "movie-extended.mkv")
		yaml_path = _write(temp_dir, "soundpipeline.yml", EXTRACT_YAML)
		tools = FakeTools({'movie.mkv': 1300.0, 'movie-extended.mkv': 1190.2})
		project = SoundPipeProject(yaml_path, working_dir=temp_dir, tools=tools,
			confirm=lambda candidate: True, interactive=False, environ={})
		project.run()
		input_file = tools.ffmpeg_calls[0][tools.ffmpeg_calls[0].index('-i') + 1]
		assert input_file == os.path.join(temp_dir, "movie-extended.mkv")

#============================================

def test_tolerance_flag_overrides_document() -> None:
	"""
	Ensure a wide CLI tolerance accepts the probed duration.
	"""
	with tempfile.TemporaryDirectory() as temp_dir:
		_write(temp_dir, "movie.mkv")
		yaml_path = _write(temp_dir, "soundpipeline.yml",
			"settings:\n  duration_tolerance: 1\n" + EXTRACT_YAML)
		tools = FakeTools({'movie.mkv': 1200.0})
		project = SoundPipeProject(yaml_path, working_dir=temp_dir, tools=tools,
			cli_settings={'duration_tolerance': 15}, dry_run=True, interactive=False,
			environ={})
		project.run()
		assert not project.reconcile_result.has_mismatches()
		assert tools.ffmpeg_calls == []
