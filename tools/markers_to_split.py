#!/usr/bin/env python3

"""
markers_to_split.py

Convert a tab separated marker export (Name, Start, Duration columns, as
written by audio editors such as Audition) into a soundpipe split step.
"""

# Standard Library
import argparse
import decimal
import os
import re
import sys

INVALID_FILENAME_RE = re.compile(r'[<>:"/\\|?*]')
SPACE_RE = re.compile(r"\s+")

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Convert marker CSV to a split step YAML")
	parser.add_argument('csv_file', help='tab separated marker file')
	parser.add_argument('output_file', nargs='?',
		help='output yaml (default: <csv name>_split.yml)')
	parser.add_argument('-i', '--input', dest='input_audio', default='input_audio.wav',
		help='split step input file')
	parser.add_argument('-o', '--output-dir', dest='output_dir', default='./splits',
		help='split step output directory')
	parser.add_argument('-e', '--extension', dest='extension', default='wav',
		help='extension for the split files')
	args = parser.parse_args()
	return args

#============================================

def parse_marker_time(text: str) -> decimal.Decimal:
	"""
	Parse a marker time in MM:SS.sss or H:MM:SS.sss form.

	Args:
		text: Time text.

	Returns:
		decimal.Decimal: Seconds.
	"""
	parts = text.strip().split(':')
	try:
		if len(parts) == 2:
			return int(parts[0]) * 60 + decimal.Decimal(parts[1])
		if len(parts) == 3:
			return int(parts[0]) * 3600 + int(parts[1]) * 60 + decimal.Decimal(parts[2])
	except (ValueError, decimal.InvalidOperation) as exc:
		raise ValueError(f"invalid marker time: {text}") from exc
	raise ValueError(f"invalid marker time: {text}")

#============================================

def format_marker_time(seconds: decimal.Decimal) -> str:
	"""
	Format seconds as h:mm:ss.SSS.

	Args:
		seconds: Seconds value.

	Returns:
		str: Formatted time.
	"""
	millis = int((seconds * 1000).quantize(decimal.Decimal(1), rounding=decimal.ROUND_HALF_UP))
	hours = millis // 3600000
	minutes = (millis // 60000) % 60
	secs = (millis // 1000) % 60
	return f"{hours}:{minutes:02d}:{secs:02d}.{millis % 1000:03d}"

#============================================

def sanitize_filename(name: str) -> str:
	cleaned = INVALID_FILENAME_RE.sub("", name)
	cleaned = SPACE_RE.sub(" ", cleaned)
	return cleaned.strip()

#============================================

def yaml_quote(value: str) -> str:
	escaped = value.replace("\\", "\\\\").replace('"', '\\"')
	return f"\"{escaped}\""

#============================================

def _find_column(header: list, word: str) -> int:
	for index, column in enumerate(header):
		if word in column.lower():
			return index
	return -1

#============================================

def parse_markers(text: str, extension: str = 'wav') -> list:
	"""
	Read marker rows into split file entries.

	Args:
		text: Marker file contents.
		extension: Extension for generated file names.

	Returns:
		list: dicts with file, start and end.
	"""
	lines = [line for line in text.splitlines() if line.strip()]
	if len(lines) < 2:
		raise ValueError("marker file must have a header and at least one row")
	header = lines[0].split("\t")
	name_index = _find_column(header, 'name')
	start_index = _find_column(header, 'start')
	duration_index = _find_column(header, 'duration')
	if -1 in (name_index, start_index, duration_index):
		raise ValueError("marker file must have Name, Start and Duration columns")
	needed = max(name_index, start_index, duration_index) + 1
	tracks = []
	for line in lines[1:]:
		cols = line.split("\t")
		# skip incomplete rows
		if len(cols) < needed:
			continue
		name = cols[name_index].strip()
		start_text = cols[start_index].strip()
		duration_text = cols[duration_index].strip()
		if not name or not start_text or not duration_text:
			continue
		filename = sanitize_filename(name)
		if filename == "":
			raise ValueError(f"marker name has no usable characters: {name}")
		start = parse_marker_time(start_text)
		end = start + parse_marker_time(duration_text)
		tracks.append({
			'file': f"{filename}.{extension}",
			'start': format_marker_time(start),
			'end': format_marker_time(end),
		})
	return tracks

#============================================

def build_split_yaml(tracks: list, input_audio: str = 'input_audio.wav',
	output_dir: str = './splits') -> str:
	lines = []
	lines.append("# Generated from marker export")
	lines.append("# Split step configuration")
	lines.append("")
	lines.append("type: split")
	lines.append(f"input: {yaml_quote(input_audio)}")
	lines.append(f"output_dir: {yaml_quote(output_dir)}")
	lines.append("files:")
	for track in tracks:
		lines.append(f"  - file: {yaml_quote(track['file'])}")
		lines.append(f"    start: {yaml_quote(track['start'])}")
		lines.append(f"    end: {yaml_quote(track['end'])}")
	return "\n".join(lines) + "\n"

#============================================

def default_output_path(csv_file: str) -> str:
	root, extension = os.path.splitext(csv_file)
	if extension.lower() == '.csv':
		return f"{root}_split.yml"
	return f"{csv_file}_split.yml"

#============================================

def main():
	args = parse_args()
	if not os.path.isfile(args.csv_file):
		print(f"Error: file '{args.csv_file}' not found", file=sys.stderr)
		sys.exit(1)
	with open(args.csv_file, 'r', encoding='utf-8-sig') as csv_handle:
		text = csv_handle.read()
	try:
		tracks = parse_markers(text, args.extension)
	except ValueError as exc:
		print(f"Error converting markers: {exc}", file=sys.stderr)
		sys.exit(1)
	output_file = args.output_file or default_output_path(args.csv_file)
	with open(output_file, 'w', encoding='utf-8') as yaml_handle:
		yaml_handle.write(build_split_yaml(tracks, args.input_audio, args.output_dir))
	print(f"Converted {len(tracks)} tracks")
	print(f"Output written to: {output_file}")


if __name__ == '__main__':
	main()
