#!/usr/bin/env python3

import os
import mutagen
from mutagen.easyid3 import EasyID3
from mutagen.flac import FLAC
from mutagen.flac import Picture
from mutagen.id3 import APIC
from mutagen.id3 import COMM
from mutagen.id3 import ID3
from mutagen.mp3 import MP3
from mutagen.mp4 import MP4
from mutagen.mp4 import MP4Cover
from soundpipelib.core import errors

EASY_TEXT_KEYS = {
	'title': 'title',
	'artist': 'artist',
	'album': 'album',
	'album_artist': 'albumartist',
	'genre': 'genre',
	'comment': 'comment',
}
COVER_FRONT = 3

#============================================

def _number_pair(number, total) -> str:
	if total is None:
		return str(number)
	return f"{number}/{total}"

#============================================

def easy_tag_values(tags: dict) -> dict:
	"""
	Map pipeline tag names onto mutagen easy keys.

	Args:
		tags: Tag values from a tag step entry.

	Returns:
		dict: easy key -> list of strings.
	"""
	values = {}
	for key, easy_key in EASY_TEXT_KEYS.items():
		if tags.get(key) is not None:
			values[easy_key] = [str(tags[key])]
	if tags.get('year') is not None:
		values['date'] = [str(tags['year'])]
	if tags.get('track') is not None:
		values['tracknumber'] = [_number_pair(tags['track'], tags.get('track_total'))]
	if tags.get('disk') is not None:
		values['discnumber'] = [_number_pair(tags['disk'], tags.get('disk_total'))]
	return values

#============================================

def artwork_mime(art_path: str) -> str:
	extension = os.path.splitext(art_path)[1].lower()
	if extension in ('.jpg', '.jpeg'):
		return 'image/jpeg'
	if extension == '.png':
		return 'image/png'
	raise errors.TaggingFailure(art_path, f"unsupported album art format: {extension}")

#============================================

class MutagenTagger():
	def apply(self, path: str, tags: dict) -> None:
		"""
		Write tags, and album art when tags['album_art'] is set, to one file.

		Args:
			path: Audio file to tag.
			tags: Tag values; album_art is a path to a jpeg or png image.
		"""
		try:
			self._write_text_tags(path, tags)
			if tags.get('album_art'):
				self._write_artwork(path, tags['album_art'])
		except (mutagen.MutagenError, OSError, ValueError, KeyError) as exc:
			raise errors.TaggingFailure(path, str(exc)) from exc

	#============================
	def _write_text_tags(self, path: str, tags: dict) -> None:
		audio = mutagen.File(path, easy=True)
		if audio is None:
			raise errors.TaggingFailure(path, "unsupported audio file type")
		if audio.tags is None:
			audio.add_tags()
		values = easy_tag_values(tags)
		# EasyID3 has no comment key
		id3_comment = None
		if isinstance(audio.tags, EasyID3):
			id3_comment = values.pop('comment', None)
		for key, value in values.items():
			audio[key] = value
		audio.save()
		if id3_comment is not None:
			self._write_id3_comment(path, id3_comment)

	#============================
	def _write_id3_comment(self, path: str, text: list) -> None:
		id3 = ID3(path)
		id3.delall('COMM')
		id3.add(COMM(encoding=3, lang='eng', desc='', text=text))
		id3.save()

	#============================
	def _write_artwork(self, path: str, art_path: str) -> None:
		mime = artwork_mime(art_path)
		with open(art_path, 'rb') as art_file:
			data = art_file.read()
		audio = mutagen.File(path)
		if isinstance(audio, MP4):
			if mime == 'image/png':
				cover_format = MP4Cover.FORMAT_PNG
			else:
				cover_format = MP4Cover.FORMAT_JPEG
			audio['covr'] = [MP4Cover(data, cover_format)]
		elif isinstance(audio, FLAC):
			picture = Picture()
			picture.type = COVER_FRONT
			picture.mime = mime
			picture.desc = 'Cover'
			picture.data = data
			audio.clear_pictures()
			audio.add_picture(picture)
		elif isinstance(audio, MP3):
			if audio.tags is None:
				audio.add_tags()
			audio.tags.delall('APIC')
			audio.tags.add(APIC(encoding=3, mime=mime, type=COVER_FRONT, desc='Cover', data=data))
		else:
			raise errors.TaggingFailure(path, "album art is not supported for this file type")
		audio.save()
