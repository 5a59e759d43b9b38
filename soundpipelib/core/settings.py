#!/usr/bin/env python3

import os
from soundpipelib.core import errors

DEFAULT_DURATION_TOLERANCE = 3.0
DEFAULT_SCAN_EXTENSIONS = ('mkv', 'mp4', 'mov', 'm4v', 'webm')
DEFAULT_MAX_WORKERS = 4

ENV_DURATION_TOLERANCE = 'SOUNDPIPE_DURATION_TOLERANCE'
ENV_SCAN_EXTENSIONS = 'SOUNDPIPE_SCAN_EXTENSIONS'
ENV_MAX_WORKERS = 'SOUNDPIPE_MAX_WORKERS'

#============================================

def coerce_tolerance(value, source: str) -> float:
	try:
		tolerance = float(value)
	except (TypeError, ValueError) as exc:
		raise errors.ConfigError(f"{source}: duration tolerance must be a number") from exc
	if tolerance != tolerance or tolerance < 0:
		raise errors.ConfigError(f"{source}: duration tolerance must be >= 0")
	return tolerance

#============================================

def coerce_extensions(value, source: str) -> tuple:
	if isinstance(value, str):
		items = value.split(',')
	elif isinstance(value, (list, tuple)):
		items = value
	else:
		raise errors.ConfigError(f"{source}: scan extensions must be a list or comma string")
	extensions = []
	for item in items:
		text = str(item).strip().lower().lstrip('.')
		if text == '':
			continue
		if text not in extensions:
			extensions.append(text)
	if len(extensions) == 0:
		raise errors.ConfigError(f"{source}: scan extensions must not be empty")
	return tuple(extensions)

#============================================

def coerce_workers(value, source: str) -> int:
	try:
		workers = int(value)
	except (TypeError, ValueError) as exc:
		raise errors.ConfigError(f"{source}: max workers must be an integer") from exc
	if workers < 1:
		raise errors.ConfigError(f"{source}: max workers must be >= 1")
	return workers

#============================================

SETTING_FIELDS = (
	('duration_tolerance', ENV_DURATION_TOLERANCE, DEFAULT_DURATION_TOLERANCE, coerce_tolerance),
	('scan_extensions', ENV_SCAN_EXTENSIONS, DEFAULT_SCAN_EXTENSIONS, coerce_extensions),
	('max_workers', ENV_MAX_WORKERS, DEFAULT_MAX_WORKERS, coerce_workers),
)

#============================================

def resolve_settings(cli_values: dict = None, document_settings: dict = None,
	environ: dict = None) -> dict:
	"""
	Merge settings with precedence CLI > environment > document > default.

	Args:
		cli_values: Values from command-line flags; None means not given.
		document_settings: The 'settings' mapping from the pipeline document.
		environ: Environment mapping, defaults to os.environ.

	Returns:
		dict: Resolved settings.
	"""
	if cli_values is None:
		cli_values = {}
	if document_settings is None:
		document_settings = {}
	if not isinstance(document_settings, dict):
		raise errors.ConfigError("settings must be a mapping")
	if environ is None:
		environ = os.environ
	for key in document_settings.keys():
		if key not in [field[0] for field in SETTING_FIELDS]:
			raise errors.ConfigError(f"unknown setting: settings.{key}")
	resolved = {}
	for (key, env_name, default, coerce) in SETTING_FIELDS:
		if cli_values.get(key) is not None:
			resolved[key] = coerce(cli_values[key], f"--{key.replace('_', '-')}")
		elif environ.get(env_name, '') != '':
			resolved[key] = coerce(environ[env_name], env_name)
		elif document_settings.get(key) is not None:
			resolved[key] = coerce(document_settings[key], f"settings.{key}")
		else:
			resolved[key] = coerce(default, 'default')
	return resolved
