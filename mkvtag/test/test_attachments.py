#pylint: disable=too-many-locals,no-self-use
#pylint: disable=too-many-public-methods,too-many-statements
"""
Attachment Store tests.
"""

from io import BytesIO

from .test import EbmlTest
from . import fixtures

__all__ = ['AttachmentTest']

JPEG = b'\xff\xd8\xff\xe0' + b'\x00' * 60
GIF = b'GIF89a' + b'\x00' * 67


class AttachmentTest(EbmlTest):
    "Test Payload, Attachment and AttachmentStore."

    def test_1_sniff(self):
        "Test MIME type detection."
        from mkvtag.attachments import sniff_mime_type, new_uid

        self.assertEqual(sniff_mime_type(fixtures.COVER_DATA), 'image/png')
        self.assertEqual(sniff_mime_type(JPEG), 'image/jpeg')
        self.assertEqual(sniff_mime_type(GIF), 'image/gif')
        self.assertEqual(sniff_mime_type(b'GIF87a...'), 'image/gif')
        self.assertEqual(sniff_mime_type(b'BM\x00\x00'), 'image/bmp')
        self.assertEqual(sniff_mime_type(b'RIFF\x00\x00\x00\x00WEBPVP8 '),
                         'image/webp')
        # RIFF that isn't WEBP, and unknown data
        self.assertEqual(sniff_mime_type(b'RIFF\x00\x00\x00\x00WAVEfmt '),
                         'application/octet-stream')
        self.assertEqual(sniff_mime_type(b'\x00\x01'),
                         'application/octet-stream')
        # The data wins over the name
        self.assertEqual(sniff_mime_type(JPEG, 'picture.png'), 'image/jpeg')
        self.assertEqual(sniff_mime_type(b'hello', 'notes.txt'), 'text/plain')

        uids = set(new_uid() for _ in range(20))
        self.assertEqual(len(uids), 20)
        for uid in uids:
            self.assertTrue(0 < uid < 1 << 64)

    def test_2_payload(self):
        "Test loaded and deferred payloads."
        from mkvtag.attachments import Payload, PAYLOAD_LOADED, \
            PAYLOAD_DEFERRED

        loaded = Payload(bytearray(b'abcdef'))
        self.assertEqual(loaded.state, PAYLOAD_LOADED)
        self.assertEqual(len(loaded), 6)
        self.assertEqual(loaded.load(), b'abcdef')
        self.assertEqual(list(loaded.iter_chunks(4)), [b'abcd', b'ef'])
        self.assertIn('loaded', repr(loaded))

        stream = BytesIO(b'0123456789')
        deferred = Payload(stream=stream, offset=2, size=5)
        self.assertEqual(deferred.state, PAYLOAD_DEFERRED)
        self.assertEqual(deferred.size, 5)
        self.assertEqual(list(deferred.iter_chunks(2)), [b'23', b'45', b'6'])
        self.assertEqual(deferred.state, PAYLOAD_DEFERRED)
        self.assertEqual(deferred.load(), b'23456')
        self.assertEqual(deferred.state, PAYLOAD_LOADED)
        self.assertIsNone(deferred.stream)
        self.assertEqual(deferred.load(), b'23456')

        # The stream ends early
        short = Payload(stream=stream, offset=8, size=5)
        with self.assertRaises(EOFError):
            short.load()
        with self.assertRaises(EOFError):
            list(short.iter_chunks(1))
        self.assertEqual(short.state, PAYLOAD_DEFERRED)

        with self.assertRaises(ValueError):
            Payload(stream=stream)

    def test_3_attachment(self):
        "Test Attachment properties and the modified flag."
        import os
        import tempfile
        from mkvtag.attachments import Attachment, Payload

        att = Attachment('front.jpg', data=JPEG, uid=5)
        self.assertEqual(att.mime_type, 'image/jpeg')
        self.assertEqual(att.description, '')
        self.assertEqual(att.uid, 5)
        self.assertEqual(att.size, len(JPEG))
        self.assertEqual(att.data, JPEG)
        self.assertTrue(att.is_picture)
        self.assertTrue(att.modified)
        self.assertIsNone(att.element)
        self.assertIn("'front.jpg'", repr(att))

        # A random UID is chosen
        self.assertNotEqual(Attachment('a.bin', data=b'x').uid, 0)
        # Deferred data is not sniffed
        att = Attachment('data', data=Payload(stream=BytesIO(JPEG),
                                              size=len(JPEG)))
        self.assertEqual(att.mime_type, 'application/octet-stream')
        self.assertFalse(att.is_picture)

        ebmlf = self.read_file()
        att = Attachment.from_element(next(ebmlf.segment.attached_files))
        self.assertEqual(att.filename, 'cover.png')
        self.assertEqual(att.mime_type, 'image/png')
        self.assertEqual(att.uid, 0x1234567890)
        self.assertEqual(att.data, fixtures.COVER_DATA)
        self.assertFalse(att.modified)
        att.description = 'Cover (front)'
        self.assertTrue(att.modified)
        att = Attachment.from_element(next(ebmlf.segment.attached_files))
        att.data = b'other data'
        self.assertTrue(att.modified)
        self.assertEqual(att.size, 10)

        with tempfile.TemporaryDirectory() as dirname:
            path = os.path.join(dirname, 'sample_gimp.gif')
            with open(path, 'wb') as out:
                out.write(GIF)
            att = Attachment.from_file(path)
            self.assertEqual(att.filename, 'sample_gimp.gif')
            self.assertEqual(att.mime_type, 'image/gif')
            self.assertEqual(att.description, '')
            self.assertEqual(att.data, GIF)
            att = Attachment.from_file(path, 'Gimp sample', 'image/x-gif')
            self.assertEqual(att.mime_type, 'image/x-gif')
            self.assertEqual(att.description, 'Gimp sample')

    def test_4_roles(self):
        "Test the roles derived from descriptions and file names."
        from mkvtag.attachments import Attachment, AttachmentStore, \
            ROLE_FRONT_COVER, ROLE_BACK_COVER, ROLE_OTHER, ROLE_NOT_A_PICTURE

        front = Attachment('cover.png', 'image/png', '', fixtures.COVER_DATA)
        back = Attachment('scan.jpg', 'image/jpeg', 'Back side', JPEG)
        second = Attachment('image.jpg', 'image/jpeg', 'Another cover', JPEG)
        other = Attachment('sample_gimp.gif', 'image/gif', '', GIF)
        sound = Attachment('apple_tags.m4a', 'audio/mp4', 'cover', b'\x00')
        store = AttachmentStore([front, back, second, other, sound])
        self.assertEqual([att.role for att in store],
                         [ROLE_FRONT_COVER, ROLE_BACK_COVER, ROLE_OTHER,
                          ROLE_OTHER, ROLE_NOT_A_PICTURE])
        self.assertEqual(store.pictures(), [front, back, second, other])

        # The first cover is the front cover
        store.remove(front)
        self.assertEqual(second.role, ROLE_FRONT_COVER)
        self.assertIsNone(front.store)
        self.assertEqual(front.role, ROLE_FRONT_COVER)
        # Not in the store: classified as if it came last
        self.assertEqual(store.role_of(front), ROLE_OTHER)

        # Hints are whole words
        for filename, role in (('background.png', ROLE_OTHER),
                               ('discovery.png', ROLE_OTHER),
                               ('back_cover.png', ROLE_BACK_COVER),
                               ('Album Back.png', ROLE_BACK_COVER),
                               ('front-cover.png', ROLE_FRONT_COVER)):
            att = Attachment(filename, 'image/png', '', fixtures.COVER_DATA)
            self.assertEqual(att.role, role, filename)

    def test_5_store(self):
        "Test the AttachmentStore and its dirty flag."
        from mkvtag.attachments import Attachment, AttachmentStore

        store = AttachmentStore.from_segment(self.read_file().segment)
        self.assertEqual(len(store), 1)
        self.assertEqual(store[0].filename, 'cover.png')
        self.assertIs(store[0].store, store)
        self.assertFalse(store.dirty)
        self.assertFalse(store.modified)

        # Changing an attachment modifies the store, not the list
        store[0].mime_type = 'image/x-png'
        self.assertFalse(store.dirty)
        self.assertTrue(store.modified)

        new = Attachment('notes.txt', 'text/plain', '', b'hello')
        store.add(new)
        self.assertTrue(store.dirty)
        self.assertEqual([att.filename for att in store],
                         ['cover.png', 'notes.txt'])
        store.remove(new)
        self.assertEqual(len(store), 1)

        old = store[0]
        store.replace([new])
        self.assertIsNone(old.store)
        self.assertIs(new.store, store)
        self.assertEqual(list(store), [new])
        store.replace([])
        self.assertEqual(len(store), 0)
        self.assertTrue(store.modified)

        self.assertEqual(len(AttachmentStore.from_segment(None)), 0)
        self.assertFalse(AttachmentStore().modified)
