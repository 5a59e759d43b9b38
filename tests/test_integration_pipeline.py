#!/usr/bin/env python3

"""
End to end pipeline run against real ffmpeg and mutagen.
"""

# Standard Library
import os
import shutil
import subprocess
import sys
import tempfile

# PIP3 modules
import pytest
from mutagen.flac import FLAC

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

# local repo modules
from soundpipelib.core import utils
from soundpipelib.core.project import SoundPipeProject
from soundpipelib.media import probe
from soundpipelib.media.tools import MediaTools

#============================================

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")
MISSING_TOOLS = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
HAVE_TOOLS = len(MISSING_TOOLS) == 0
SKIP_TOOLS_REASON = f"missing tools: {', '.join(MISSING_TOOLS)}"

#============================================

def _write_pipeline_yaml(path: str) -> None:
	lines = []
	lines.append("soundpipe: 1")
	lines.append("formats:")
	lines.append("  available:")
	lines.append("    - format: flac")
	lines.append("      bit_depths: [16, 24]")
	lines.append("      default_bit_depth: 16")
	lines.append("  default: flac")
	lines.append("steps:")
	lines.append("  - type: ffmpeg")
	lines.append("    input: source.wav")
	lines.append("    output: audio.wav")
	lines.append("    input_duration: \"0:04\"")
	lines.append("    args: [-acodec, pcm_s16le]")
	lines.append("  - type: split")
	lines.append("    input: audio.wav")
	lines.append("    output_dir: splits")
	lines.append("    files:")
	lines.append("      - {file: first.wav, start: \"0:00\", end: \"0:01.5\"}")
	lines.append("      - {file: second.wav, start: \"96000 @ 48000 Hz\", end: \"0:04\"}")
	lines.append("  - type: transcode")
	lines.append("    input_dir: splits")
	lines.append("    output_dir: out")
	lines.append("    files: [\"*.wav\"]")
	lines.append("  - type: tag")
	lines.append("    input_dir: out")
	lines.append("    files:")
	lines.append("      - {file: first.flac, title: First, artist: Tester, track: 1, track_total: 2}")
	lines.append("      - {file: second.flac, title: Second, artist: Tester, track: 2, track_total: 2}")
	lines.append("  - type: cleanup")
	lines.append("    files: [audio.wav, splits]")
	with open(path, "w") as yaml_file:
		yaml_file.write("\n".join(lines))
		yaml_file.write("\n")

#============================================

@pytest.mark.skipif(not HAVE_TOOLS, reason=SKIP_TOOLS_REASON)
def test_pipeline_end_to_end() -> None:
	"""
	Ensure a generated tone is extracted, split, transcoded, tagged and cleaned.
	"""
	utils.set_quiet_mode(True)
	try:
		with tempfile.TemporaryDirectory() as temp_dir:
			subprocess.run(["ffmpeg", "-y", "-f", "lavfi", "-i",
				"sine=frequency=440:sample_rate=48000:duration=4",
				os.path.join(temp_dir, "source.wav")],
				check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
			yaml_path = os.path.join(temp_dir, "soundpipeline.yml")
			_write_pipeline_yaml(yaml_path)
			project = SoundPipeProject(yaml_path, working_dir=temp_dir,
				format_strings=["flac:16bit"], interactive=False, environ={})
			project.run()
			out_dir = os.path.join(temp_dir, "out")
			assert sorted(os.listdir(out_dir)) == ["first.flac", "second.flac"]
			assert not os.path.exists(os.path.join(temp_dir, "splits"))
			assert not os.path.exists(os.path.join(temp_dir, "audio.wav"))
			prober = probe.DurationProber(MediaTools.locate())
			first = prober.probe(os.path.join(out_dir, "first.flac"))
			assert first == pytest.approx(1.5, abs=0.05)
			tags = FLAC(os.path.join(out_dir, "second.flac"))
			assert tags["title"] == ["Second"]
			assert tags["tracknumber"] == ["2/2"]
	finally:
		utils.set_quiet_mode(False)
