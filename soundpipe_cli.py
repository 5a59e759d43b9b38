#!/usr/bin/env python3

import argparse
import sys
from soundpipelib.core import errors
from soundpipelib.core import utils
from soundpipelib.core.project import SoundPipeProject

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Configuration driven audio extraction pipeline")
	parser.add_argument('config', nargs='?', default='soundpipeline.yml',
		help='pipeline yaml file (default: soundpipeline.yml)')
	parser.add_argument('-w', '--working-dir', dest='working_dir',
		help='directory pipeline paths are relative to (default: current directory)')
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='print extra detail')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='suppress progress output')
	parser.add_argument('-t', '--duration-tolerance', dest='duration_tolerance', type=float,
		help='allowed duration difference in seconds (default: 3.0)')
	parser.add_argument('-x', '--scan-extensions', dest='scan_extensions',
		help='comma separated extensions scanned for replacement inputs')
	parser.add_argument('-j', '--jobs', dest='max_workers', type=int,
		help='parallel probe and transcode workers')
	parser.add_argument('-f', '--format', dest='formats', action='append',
		help='output format, e.g. mp3:320k or flac:16bit; repeat for several')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='check durations and validate only, do not execute')
	parser.add_argument('-y', '--yes', dest='assume_yes', action='store_true',
		help='accept suggested replacement files without asking')
	parser.add_argument('-m', '--allow-duration-mismatch', dest='allow_mismatch',
		action='store_true', help='continue when a duration mismatch is unresolved')
	args = parser.parse_args(argv)
	return args

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	utils.set_quiet_mode(args.quiet)
	utils.set_verbose_mode(args.verbose)
	cli_settings = {
		'duration_tolerance': args.duration_tolerance,
		'scan_extensions': args.scan_extensions,
		'max_workers': args.max_workers,
	}
	try:
		project = SoundPipeProject(args.config, working_dir=args.working_dir,
			cli_settings=cli_settings, format_strings=args.formats, dry_run=args.dry_run,
			assume_yes=args.assume_yes, allow_mismatch=args.allow_mismatch)
		project.run()
	except KeyboardInterrupt:
		print("interrupted", file=sys.stderr)
		return errors.EXIT_INTERRUPTED
	except errors.SoundPipeError as exc:
		print(f"error: {exc}", file=sys.stderr)
		return exc.exit_code
	return errors.EXIT_OK


if __name__ == '__main__':
	sys.exit(main())
