#!/usr/bin/env python3

from soundpipelib.core import errors
from soundpipelib.core import timecode

FLAC_SAMPLE_FORMATS = {16: 's16', 24: 's32', 32: 's32'}
ALAC_SAMPLE_FORMATS = {16: 's16p', 24: 's32p', 32: 's32p'}

#============================================

def extract_args(input_file: str, output_file: str, extra_args: list) -> list:
	cmd = ['-y', '-i', input_file]
	cmd += list(extra_args)
	cmd.append(output_file)
	return cmd

#============================================

def split_args(input_file: str, segments: list) -> list:
	"""
	Build one ffmpeg invocation that cuts every segment of a split step.

	Args:
		input_file: Source audio file.
		segments: (start seconds, end seconds, output path) tuples.

	Returns:
		list: ffmpeg arguments.
	"""
	cmd = ['-y', '-i', input_file]
	for (start, end, output_file) in segments:
		cmd += ['-ss', timecode.format(start), '-to', timecode.format(end)]
		cmd += ['-vn', '-acodec', 'copy', output_file]
	return cmd

#============================================

def _bit_depth_args(bit_depth, sample_formats: dict) -> list:
	if bit_depth is None:
		return []
	sample_fmt = sample_formats.get(bit_depth)
	if sample_fmt is None:
		raise errors.FormatSelectionError(f"unsupported bit depth: {bit_depth}")
	args = ['-sample_fmt', sample_fmt]
	if bit_depth == 24:
		args += ['-bits_per_raw_sample', '24']
	return args

#============================================

def codec_args(selected: dict, aac_encoder: str = 'aac') -> list:
	format_name = selected['format']
	bitrate = selected.get('bitrate')
	if format_name == 'mp3':
		args = ['-acodec', 'libmp3lame']
		if bitrate:
			args += ['-b:a', bitrate]
		return args
	if format_name == 'aac':
		args = ['-acodec', aac_encoder]
		if bitrate:
			args += ['-b:a', bitrate]
		return args
	if format_name == 'flac':
		return ['-acodec', 'flac'] + _bit_depth_args(selected.get('bit_depth'), FLAC_SAMPLE_FORMATS)
	if format_name == 'alac':
		return ['-acodec', 'alac'] + _bit_depth_args(selected.get('bit_depth'), ALAC_SAMPLE_FORMATS)
	raise errors.FormatSelectionError(f"unsupported output format: {format_name}")

#============================================

def transcode_args(input_file: str, output_file: str, selected: dict,
	aac_encoder: str = 'aac') -> list:
	cmd = ['-y', '-i', input_file, '-vn']
	cmd += codec_args(selected, aac_encoder)
	cmd.append(output_file)
	return cmd
