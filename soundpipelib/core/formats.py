#!/usr/bin/env python3

from rich.console import Console
from rich.prompt import Prompt
from soundpipelib.core import errors

OUTPUT_EXTENSIONS = {
	'mp3': 'mp3',
	'aac': 'm4a',
	'alac': 'm4a',
	'flac': 'flac',
}
LOSSLESS_FORMATS = ('flac', 'alac')
DEFAULT_BIT_DEPTH = 24
DISPLAY_NAMES = {
	'mp3': "MP3",
	'aac': "AAC (M4A)",
	'flac': "FLAC (Lossless)",
	'alac': "ALAC (Apple Lossless)",
}

#============================================

def output_extension(format_name: str) -> str:
	extension = OUTPUT_EXTENSIONS.get(format_name)
	if extension is None:
		raise errors.FormatSelectionError(f"unsupported output format: {format_name}")
	return extension

#============================================

def _find_option(format_name: str, formats: dict) -> dict:
	for option in formats.get('available', []):
		if option['format'] == format_name:
			return option
	names = ", ".join(option['format'] for option in formats.get('available', []))
	raise errors.FormatSelectionError(
		f"format '{format_name}' is not available; available formats: {names}")

#============================================

def _make_selected(option: dict, bitrate, bit_depth) -> dict:
	return {
		'format': option['format'],
		'bitrate': bitrate,
		'bit_depth': bit_depth,
		'extension': output_extension(option['format']),
	}

#============================================

def _default_bit_depth(option: dict):
	if option['format'] not in LOSSLESS_FORMATS:
		return None
	if option.get('default_bit_depth') is not None:
		return option['default_bit_depth']
	return DEFAULT_BIT_DEPTH

#============================================

def parse_format_string(format_str: str, formats: dict) -> dict:
	"""
	Parse a CLI format string such as mp3, mp3:320k or flac:16bit.

	Args:
		format_str: Format string from the command line.
		formats: Parsed formats block of the pipeline.

	Returns:
		dict: Selected format.
	"""
	parts = str(format_str).strip().split(':')
	if len(parts) > 2 or parts[0] == '':
		raise errors.FormatSelectionError(f"invalid format string: {format_str}")
	format_name = parts[0].lower()
	option = _find_option(format_name, formats)
	if len(parts) == 1:
		return _make_selected(option, option.get('default_bitrate'), _default_bit_depth(option))
	param = parts[1]
	if param.lower().endswith('bit'):
		if format_name not in LOSSLESS_FORMATS:
			raise errors.FormatSelectionError(
				f"format '{format_name}' does not support bit depth specification")
		depth_text = param[:-3]
		if not depth_text.isdigit():
			raise errors.FormatSelectionError(f"invalid bit depth format: {param}")
		depth = int(depth_text)
		allowed = option.get('bit_depths') or [16, 24]
		if depth not in allowed:
			allowed_text = ", ".join(f"{item}bit" for item in allowed)
			raise errors.FormatSelectionError(
				f"bit depth '{param}' is not available for format '{format_name}'; "
				f"available bit depths: {allowed_text}")
		return _make_selected(option, None, depth)
	if option.get('bitrates') is None:
		raise errors.FormatSelectionError(
			f"format '{format_name}' does not support bitrate specification")
	if param not in option['bitrates']:
		raise errors.FormatSelectionError(
			f"bitrate '{param}' is not available for format '{format_name}'; "
			f"available bitrates: {', '.join(option['bitrates'])}")
	return _make_selected(option, param, None)

#============================================

def select_format_interactive(formats: dict, console: Console = None) -> dict:
	available = formats.get('available', [])
	if len(available) == 0:
		raise errors.FormatSelectionError("no output formats are available")
	if console is None:
		console = Console()
	names = [option['format'] for option in available]
	default_name = formats.get('default') or names[0]
	console.print("[bold]Available output formats[/bold]")
	for name in names:
		suffix = " (default)" if name == default_name else ""
		console.print(f"  {name}: {DISPLAY_NAMES.get(name, name.upper())}{suffix}")
	chosen = Prompt.ask("Select output format", choices=names, default=default_name,
		console=console)
	option = _find_option(chosen, formats)
	bitrate = option.get('default_bitrate')
	bitrates = option.get('bitrates')
	if bitrates is not None:
		if len(bitrates) == 1:
			bitrate = bitrates[0]
		else:
			bitrate = Prompt.ask(f"Select bitrate for {chosen}", choices=bitrates,
				default=bitrate or bitrates[0], console=console)
	bit_depth = _default_bit_depth(option)
	bit_depths = option.get('bit_depths')
	if bit_depth is not None and bit_depths is not None and len(bit_depths) > 1:
		depth_choices = [str(depth) for depth in bit_depths]
		depth_text = Prompt.ask(f"Select bit depth for {chosen}", choices=depth_choices,
			default=str(bit_depth), console=console)
		bit_depth = int(depth_text)
	return _make_selected(option, bitrate, bit_depth)

#============================================

def select_formats(format_strings: list, formats: dict, interactive: bool = True) -> list:
	"""
	Resolve the output formats for this run.

	Args:
		format_strings: Format strings given on the command line.
		formats: Parsed formats block of the pipeline.
		interactive: Prompt when no format string is given.

	Returns:
		list: Selected formats, one per distinct output extension.
	"""
	if format_strings:
		selected = [parse_format_string(item, formats) for item in format_strings]
	elif interactive:
		selected = [select_format_interactive(formats)]
	else:
		default_name = formats.get('default')
		if default_name is None:
			if len(formats.get('available', [])) == 0:
				raise errors.FormatSelectionError("no output formats are available")
			default_name = formats['available'][0]['format']
		selected = [parse_format_string(default_name, formats)]
	seen = {}
	for item in selected:
		previous = seen.get(item['extension'])
		if previous is not None:
			raise errors.FormatSelectionError(
				f"formats '{previous}' and '{item['format']}' both write .{item['extension']} files")
		seen[item['extension']] = item['format']
	return selected

#============================================

def output_name(input_name: str, selected: dict) -> str:
	stem = input_name.rsplit('/', 1)[-1]
	if '.' in stem.lstrip('.'):
		stem = stem[:stem.rindex('.')]
	return f"{stem}.{selected['extension']}"
