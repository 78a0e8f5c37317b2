#pylint: disable=too-many-locals,no-self-use
#pylint: disable=too-many-public-methods,too-many-statements
"""
MatroskaFile tests: reading, modifying and saving the 'Turning Lime' video.
"""

import os
import tempfile
from io import BytesIO

from .test import EbmlTest
from . import fixtures

__all__ = ['MatroskaFileTest']

GIF_DATA = b'GIF89a' + b'\x01' * 67
M4A_DATA = b'\x00\x00\x00\x20ftypM4A ' + b'\x00' * (102400 - 12)


class MatroskaFileTest(EbmlTest):
    "Test the MatroskaFile entry point."

    def write_tmp(self, dirname, data=None):
        "Write data (default self.file_data) to a file in dirname."
        path = os.path.join(dirname, 'test.mkv')
        with open(path, 'wb') as out:
            out.write(self.file_data if data is None else data)
        return path

    def test_1_properties(self):
        "Test the audio and video properties."
        from mkvtag.file import Properties

        mkv = self.open_mkv()
        props = mkv.properties
        self.assertAlmostEqual(props.duration, 1.12)
        self.assertEqual(props.duration_ms, 1120)
        self.assertEqual(props.audio_sample_rate, 48000)
        self.assertEqual(props.audio_channels, 2)
        self.assertEqual(props.bits_per_sample, 0)
        self.assertEqual(props.video_width, 320)
        self.assertEqual(props.video_height, 240)
        self.assertEqual(props.codecs, ['V_MPEG4/ISO/AVC', 'A_AAC'])
        self.assertTrue(props.is_video)
        self.assertIn('48000Hz', repr(props))
        self.assertEqual(mkv.defects, [])

        empty = Properties()
        self.assertEqual(empty.duration_ms, 0)
        self.assertEqual(empty.codecs, [])
        self.assertFalse(empty.is_video)

    def test_2_read(self):
        "Test the tags of the test video."
        from mkvtag.file import TAG_TYPE_MATROSKA

        mkv = self.open_mkv()
        gtag = mkv.tag
        self.assertEqual(gtag.title, 'Turning Lime')
        self.assertEqual(gtag.performers, ['Lime'])
        self.assertEqual(gtag.composers, ['Starwer'])
        self.assertEqual(gtag.year, 2017)
        self.assertEqual(gtag.genres, ['Test'])
        self.assertEqual(gtag.comment, 'no comments')
        self.assertEqual(len(gtag.pictures), 1)
        self.assertEqual(gtag.pictures[0].mime_type, 'image/png')
        self.assertEqual(gtag.pictures[0].size, 17307)

        mtag = mkv.get_tag(TAG_TYPE_MATROSKA)
        self.assertIs(mtag, mkv.tags.primary())
        self.assertEqual(mtag.get('SUMMARY'), [
            'This is a test Video showing a lime moving on a table'])
        self.assertIsNone(mkv.get_tag('id3v2'))

        # Without pictures
        mkv = self.open_mkv(read_pictures=False)
        self.assertEqual(mkv.tag.pictures, [])
        self.assertEqual(mkv.tag.title, 'Turning Lime')

        # No Tags at all
        mkv = self.open_mkv(fixtures.turning_lime(with_tags=False))
        self.assertIsNone(mkv.get_tag(TAG_TYPE_MATROSKA))
        self.assertIsNone(mkv.tag.title)
        mtag = mkv.get_tag(TAG_TYPE_MATROSKA, create=True)
        self.assertEqual(mtag.target_type_value, 50)

    def test_3_modify_and_save(self):
        "Change tags and pictures, save to a path and read the result."
        from mkvtag.file import MatroskaFile, TAG_TYPE_MATROSKA
        from mkvtag.model import Tag
        from mkvtag.attachments import Attachment, ROLE_FRONT_COVER, \
            ROLE_OTHER, ROLE_NOT_A_PICTURE, PAYLOAD_DEFERRED

        with tempfile.TemporaryDirectory() as dirname:
            path = self.write_tmp(dirname)
            os.chmod(path, 0o640)
            with MatroskaFile(path) as mkv:
                mkv.get_tag(TAG_TYPE_MATROSKA).set('CHOREGRAPHER', None,
                                                   'TEST choreographer')
                mkv.tag.pictures = [
                    Attachment('cover.png', None, 'TEST description 0',
                               fixtures.COVER_DATA),
                    Attachment('sample_gimp.gif', 'image/gif', '', GIF_DATA),
                    Attachment('apple_tags.m4a', 'audio/mp4', '', M4A_DATA)]
                mkv.tag.performers = ['TEST artist 1', 'TEST artist 2']
                mkv.tag.performers_role = ['TEST role 1', 'TEST role 2']
                album = Tag(mkv.tags, 70)
                album.set('ARRANGER', None, 'TEST arranger')
                album.set('TITLE', None, 'TEST Album title')
                mkv.tag.album_artists = ['TEST album artist']
                mkv.tag.track = 4
                mkv.tag.track_count = 9
                mkv.tag.disc = 2
                mkv.tag.title_sort = 'Lime, Turning'
                mkv.tag.performers_sort = [None, 'artist 2, TEST']
                mkv.tag.lyrics = 'TEST lyrics'
                mkv.tag.beats_per_minute = 98
                mkv.save()
                # The file was read again
                self.assertEqual(mkv.tag.album, 'TEST Album title')
                self.assertEqual(mkv.defects, [])

            self.assertEqual(os.listdir(dirname), ['test.mkv'])
            self.assertEqual(os.stat(path).st_mode & 0o777, 0o640)

            with MatroskaFile(path) as mkv:
                self.assertEqual(mkv.defects, [])
                gtag = mkv.tag
                self.assertEqual(mkv.get_tag(TAG_TYPE_MATROSKA)
                                 .get('CHOREGRAPHER', None),
                                 ['TEST choreographer'])
                self.assertEqual(gtag.title, 'Turning Lime')
                self.assertEqual(gtag.performers,
                                 ['TEST artist 1', 'TEST artist 2'])
                self.assertEqual(gtag.joined_performers_role,
                                 'TEST role 1; TEST role 2')
                self.assertEqual(gtag.album, 'TEST Album title')
                self.assertEqual(mkv.tags.album().get('ARRANGER'),
                                 ['TEST arranger'])
                self.assertEqual(gtag.year, 2017)
                self.assertEqual(gtag.album_artists, ['TEST album artist'])
                self.assertEqual((gtag.track, gtag.track_count, gtag.disc),
                                 (4, 9, 2))
                self.assertIsNone(gtag.disc_count)
                self.assertEqual(gtag.title_sort, 'Lime, Turning')
                self.assertEqual(gtag.performers_sort,
                                 [None, 'artist 2, TEST'])
                self.assertEqual(gtag.joined_performers_role,
                                 'TEST role 1; TEST role 2')
                self.assertEqual(gtag.lyrics, 'TEST lyrics')
                self.assertEqual(gtag.beats_per_minute, 98)

                pictures = gtag.pictures
                self.assertEqual([(att.filename, att.mime_type, att.size)
                                  for att in pictures],
                                 [('cover.png', 'image/png', 17307),
                                  ('sample_gimp.gif', 'image/gif', 73),
                                  ('apple_tags.m4a', 'audio/mp4', 102400)])
                self.assertEqual([att.role for att in pictures],
                                 [ROLE_FRONT_COVER, ROLE_OTHER,
                                  ROLE_NOT_A_PICTURE])
                self.assertEqual(pictures[0].description,
                                 'TEST description 0')
                self.assertEqual(pictures[0].data, fixtures.COVER_DATA)
                self.assertEqual(pictures[1].data, GIF_DATA)
                self.assertEqual(pictures[2].payload.state, PAYLOAD_DEFERRED)
                self.assertEqual(pictures[2].data, M4A_DATA)
                self.assertIs(gtag.front_cover, pictures[0])

                # Audio and video are untouched
                self.assertEqual(mkv.properties.duration_ms, 1120)
                cluster = mkv.ebml_file.segment.child_named('Cluster')
                self.assertEqual(cluster.read_raw(mkv.ebml_file.stream),
                                 fixtures.CLUSTER)

    def test_4_save_stream(self):
        "Save to the stream the file was read from."
        from mkvtag.file import MatroskaFile

        stream = BytesIO(self.file_data)
        mkv = MatroskaFile(stream)
        mkv.tag.title = 'New title'
        mkv.tag.genres = ['Drama', 'Test']
        mkv.save()
        self.assertIs(mkv.source, stream)
        self.assertFalse(stream.closed)
        self.assertEqual(mkv.tag.title, 'New title')
        mkv.close()
        self.assertFalse(stream.closed)

        mkv = MatroskaFile(BytesIO(stream.getvalue()))
        self.assertEqual(mkv.tag.title, 'New title')
        self.assertEqual(mkv.tag.joined_genres, 'Drama; Test')
        self.assertEqual(mkv.tag.pictures[0].filename, 'cover.png')

        # Saving again doesn't grow the file: the new Tags fit in place
        size = len(stream.getvalue())
        mkv = MatroskaFile(stream)
        mkv.tag.genres = 'Test'
        mkv.save()
        self.assertEqual(len(stream.getvalue()), size)

    def test_5_without_pictures(self):
        "Attachments not read are left as they are."
        mkv = self.open_mkv(read_pictures=False)
        mkv.tag.title = 'No pictures read'
        new = self.save_and_reopen(mkv)
        self.assertEqual(new.tag.title, 'No pictures read')
        self.assertEqual([att.filename for att in new.tag.pictures],
                         ['cover.png'])
        self.assertEqual(new.tag.pictures[0].data, fixtures.COVER_DATA)

    def test_6_clear(self):
        "Clearing the tags and pictures of a file."
        mkv = self.open_mkv()
        mkv.tag.clear()
        mkv.tag.pictures = []
        self.assertTrue(mkv.tag.is_empty)
        new = self.save_and_reopen(mkv)
        self.assertTrue(new.tag.is_empty)
        self.assertEqual(new.defects, [])
        # Tags that the facade doesn't know are kept
        self.assertEqual(new.tags.primary().get('SUMMARY'), [
            'This is a test Video showing a lime moving on a table'])
        self.assertNotIn('Attachments', [child.name for child
                                         in new.ebml_file.segment])

    def test_7_failed_save(self):
        "A failed save leaves the source untouched."
        from mkvtag import Inconsistent
        from mkvtag.file import MatroskaFile

        with tempfile.TemporaryDirectory() as dirname:
            data = b'not a matroska file' * 10
            path = self.write_tmp(dirname, data)
            with MatroskaFile(path) as mkv:
                mkv.tag.title = 'Lost'
                with self.assertRaises(Inconsistent):
                    mkv.save()
            self.assertEqual(os.listdir(dirname), ['test.mkv'])
            with open(path, 'rb') as stream:
                self.assertEqual(stream.read(), data)
