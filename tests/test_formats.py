#!/usr/bin/env python3

"""
Pytest coverage for output format selection.
"""

# Standard Library
import os
import sys

# PIP3 modules
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from soundpipelib.core import errors
from soundpipelib.core import formats
from soundpipelib.media import ffmpeg_commands

#============================================

FORMATS = {
	'available': [
		{'format': 'mp3', 'bitrates': ['192k', '320k'], 'default_bitrate': '320k',
			'bit_depths': None, 'default_bit_depth': None},
		{'format': 'aac', 'bitrates': ['256k'], 'default_bitrate': None,
			'bit_depths': None, 'default_bit_depth': None},
		{'format': 'flac', 'bitrates': None, 'default_bitrate': None,
			'bit_depths': [16, 24], 'default_bit_depth': 16},
		{'format': 'alac', 'bitrates': None, 'default_bitrate': None,
			'bit_depths': None, 'default_bit_depth': None},
	],
	'default': 'flac',
}

#============================================

def test_parse_plain_format_uses_defaults() -> None:
	"""
	Ensure a bare format name picks its defaults.
	"""
	selected = formats.parse_format_string("mp3", FORMATS)
	assert selected == {'format': 'mp3', 'bitrate': '320k', 'bit_depth': None, 'extension': 'mp3'}
	selected = formats.parse_format_string("alac", FORMATS)
	assert selected['bit_depth'] == 24
	assert selected['extension'] == 'm4a'

#============================================

def test_parse_bitrate_and_bit_depth() -> None:
	"""
	Ensure mp3:192k and flac:24bit are honored.
	"""
	assert formats.parse_format_string("mp3:192k", FORMATS)['bitrate'] == '192k'
	selected = formats.parse_format_string("FLAC:24bit", FORMATS)
	assert selected['bit_depth'] == 24
	assert selected['bitrate'] is None

#============================================

@pytest.mark.parametrize("text", [
	"ogg",
	"mp3:128k",
	"mp3:16bit",
	"flac:320k",
	"flac:20bit",
	"flac:xbit",
	"mp3:320k:extra",
	"",
])
def test_parse_rejects_unavailable_choices(text: str) -> None:
	"""
	Ensure unavailable formats and parameters are rejected.
	"""
	with pytest.raises(errors.FormatSelectionError):
		formats.parse_format_string(text, FORMATS)

#============================================

def test_select_formats_non_interactive_uses_default() -> None:
	"""
	Ensure the document default is chosen without prompting.
	"""
	selected = formats.select_formats([], FORMATS, interactive=False)
	assert [item['format'] for item in selected] == ['flac']

#============================================

def test_select_formats_rejects_shared_extension() -> None:
	"""
	Ensure aac and alac cannot both write .m4a files.
	"""
	with pytest.raises(errors.FormatSelectionError):
		formats.select_formats(["aac", "alac"], FORMATS, interactive=False)
	selected = formats.select_formats(["mp3", "flac"], FORMATS, interactive=False)
	assert [item['extension'] for item in selected] == ['mp3', 'flac']

#============================================

def test_output_name_replaces_extension() -> None:
	"""
	Ensure transcode outputs keep the stem.
	"""
	mp3 = formats.parse_format_string("mp3", FORMATS)
	assert formats.output_name("splits/01 Intro.wav", mp3) == "01 Intro.mp3"
	assert formats.output_name("noext", mp3) == "noext.mp3"

#============================================

def test_codec_args_per_format() -> None:
	"""
	Ensure encoder arguments follow the selected format.
	"""
	mp3 = formats.parse_format_string("mp3:192k", FORMATS)
	assert ffmpeg_commands.codec_args(mp3) == ['-acodec', 'libmp3lame', '-b:a', '192k']
	aac = formats.parse_format_string("aac:256k", FORMATS)
	assert ffmpeg_commands.codec_args(aac, 'aac_at') == ['-acodec', 'aac_at', '-b:a', '256k']
	flac = formats.parse_format_string("flac:16bit", FORMATS)
	assert ffmpeg_commands.codec_args(flac) == ['-acodec', 'flac', '-sample_fmt', 's16']
	alac = formats.parse_format_string("alac", FORMATS)
	assert ffmpeg_commands.codec_args(alac) == [
		'-acodec', 'alac', '-sample_fmt', 's32p', '-bits_per_raw_sample', '24',
	]
