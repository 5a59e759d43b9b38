#!/usr/bin/env python3

"""
Unit tests for tools/markers_to_split.py.
"""

# Standard Library
import os
import sys
import tempfile

# PIP3 modules
import pytest
import yaml

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)
TOOLS_DIR = os.path.join(REPO_ROOT, "tools")
if TOOLS_DIR not in sys.path:
	sys.path.insert(0, TOOLS_DIR)

# local repo modules
import markers_to_split
from soundpipelib.core.loader import PipelineLoader

#============================================

MARKERS = (
	"Name\tStart\tDuration\tTime Format\tType\tDescription\n"
	"Intro / Overture\t0:00.000\t1:05.250\tdecimal\tCue\t\n"
	"Act  One?\t1:05.250\t1:02:03.500\tdecimal\tCue\t\n"
	"\t2:00.000\t0:10.000\tdecimal\tCue\t\n"
	"short row\n"
)

#============================================

def test_parse_markers_builds_entries() -> None:
	"""
	Ensure rows become sanitized file names with start and end times.
	"""
	tracks = markers_to_split.parse_markers(MARKERS)
	assert tracks == [
		{'file': "Intro Overture.wav", 'start': "0:00:00.000", 'end': "0:01:05.250"},
		{'file': "Act One.wav", 'start': "0:01:05.250", 'end': "1:03:08.750"},
	]

#============================================

def test_missing_columns_raise() -> None:
	"""
	Ensure a header without Duration is rejected.
	"""
	with pytest.raises(ValueError):
		markers_to_split.parse_markers("Name\tStart\nA\t0:00\n")

#============================================

def test_default_output_path() -> None:
	"""
	Ensure the csv suffix becomes _split.yml.
	"""
	assert markers_to_split.default_output_path("Markers.CSV") == "Markers_split.yml"
	assert markers_to_split.default_output_path("markers.txt") == "markers.txt_split.yml"

#============================================

def test_generated_yaml_loads_as_split_step() -> None:
	"""
	Ensure the output is a split step the pipeline loader accepts.
	"""
	tracks = markers_to_split.parse_markers(MARKERS)
	text = markers_to_split.build_split_yaml(tracks, "album.wav", "./tracks")
	assert text.startswith("# Generated from marker export\n")
	step = yaml.safe_load(text)
	assert step['type'] == 'split'
	assert step['input'] == 'album.wav'
	with tempfile.TemporaryDirectory() as temp_dir:
		loader = PipelineLoader(os.path.join(temp_dir, "p.yml"))
		pipeline = loader.parse_document({'steps': [step]})
	assert pipeline.steps[0]['output_dir'] == './tracks'
	assert pipeline.steps[0]['files'][1]['end'] == "1:03:08.750"
