#!/usr/bin/env python3

"""
Timestamp and duration helpers.

Accepted text forms:
* MM:SS[.frac]
* H:MM:SS[.frac]
* N @ R Hz (sample count N at sample rate R)
"""

import decimal
import re
from soundpipelib.core import errors

INTEGER_RE = re.compile(r"^\d+$")
SECONDS_RE = re.compile(r"^\d+(\.\d+)?$")
SAMPLES_RE = re.compile(r"^(\d+)\s*@\s*(\d+(?:\.\d+)?)\s*(?:hz)?$", re.IGNORECASE)
MICROSECOND = decimal.Decimal("0.000001")

#============================================

def parse(text) -> float:
	"""
	Parse a timestamp into seconds.

	Args:
		text: Timestamp text, or an int/float already in seconds.

	Returns:
		float: Time in seconds.
	"""
	return float(parse_decimal(text))

#============================================

def parse_decimal(text) -> decimal.Decimal:
	if text is None:
		raise errors.MalformedTimestamp(text, "time value is required")
	if isinstance(text, bool):
		raise errors.MalformedTimestamp(text, "expected a timestamp string")
	if isinstance(text, int):
		if text < 0:
			raise errors.MalformedTimestamp(text, "negative time")
		return decimal.Decimal(text)
	if isinstance(text, float):
		if text < 0:
			raise errors.MalformedTimestamp(text, "negative time")
		return decimal.Decimal(str(text))
	if not isinstance(text, str):
		raise errors.MalformedTimestamp(text, "expected a timestamp string")
	value = text.strip()
	if value == "":
		raise errors.MalformedTimestamp(text, "time value is empty")
	if '@' in value:
		return _parse_sample_count(text, value)
	parts = value.split(':')
	if len(parts) not in (2, 3):
		raise errors.MalformedTimestamp(text, "expected MM:SS or H:MM:SS")
	seconds_text = parts.pop()
	minutes_text = parts.pop()
	hours_text = parts.pop() if len(parts) > 0 else "0"
	if not INTEGER_RE.match(hours_text):
		raise errors.MalformedTimestamp(text, f"hours '{hours_text}' is not a number")
	if not INTEGER_RE.match(minutes_text):
		raise errors.MalformedTimestamp(text, f"minutes '{minutes_text}' is not a number")
	if not SECONDS_RE.match(seconds_text):
		raise errors.MalformedTimestamp(text, f"seconds '{seconds_text}' is not a number")
	hours = decimal.Decimal(hours_text)
	minutes = decimal.Decimal(minutes_text)
	seconds = decimal.Decimal(seconds_text)
	if len(value.split(':')) == 3 and minutes >= 60:
		raise errors.MalformedTimestamp(text, "minutes must be less than 60")
	if seconds >= 60:
		raise errors.MalformedTimestamp(text, "seconds must be less than 60")
	return hours * decimal.Decimal(3600) + minutes * decimal.Decimal(60) + seconds

#============================================

def _parse_sample_count(text: str, value: str) -> decimal.Decimal:
	match = SAMPLES_RE.match(value)
	if match is None:
		raise errors.MalformedTimestamp(text, "expected 'N @ R Hz' sample count")
	samples = decimal.Decimal(match.group(1))
	rate = decimal.Decimal(match.group(2))
	if rate <= 0:
		raise errors.MalformedTimestamp(text, "sample rate must be positive")
	return samples / rate

#============================================

def format(seconds) -> str:
	"""
	Format seconds as H:MM:SS.ffffff.

	Args:
		seconds: Non-negative time in seconds.

	Returns:
		str: Formatted timestamp.
	"""
	value = decimal.Decimal(str(seconds))
	if value < 0:
		raise ValueError("seconds must be >= 0")
	value = value.quantize(MICROSECOND, rounding=decimal.ROUND_HALF_UP)
	total_micros = int(value / MICROSECOND)
	hours = total_micros // 3600000000
	remainder = total_micros % 3600000000
	minutes = remainder // 60000000
	remainder = remainder % 60000000
	seconds_part = remainder // 1000000
	micros_part = remainder % 1000000
	return f"{hours}:{minutes:02d}:{seconds_part:02d}.{micros_part:06d}"

