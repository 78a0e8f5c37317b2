"""
Attachment Store: the files attached to a Matroska Segment.

Each Attachment has a unique identifier, a file name, a MIME type, a
description and a payload.  Pictures are attachments with an image MIME type;
their role (front cover, back cover, other) is not stored in the file but
derived from the description and file name.

Payloads can be large, so they are modeled by Payload objects that are either
loaded (the bytes are in memory) or deferred (only the stream, offset and size
are known, and load() reads them).
"""

import os
import re
import uuid
import mimetypes
from os import SEEK_SET

__all__ = ['Payload', 'Attachment', 'AttachmentStore',
           'PAYLOAD_DEFERRED', 'PAYLOAD_LOADED',
           'ROLE_FRONT_COVER', 'ROLE_BACK_COVER', 'ROLE_OTHER',
           'ROLE_NOT_A_PICTURE', 'sniff_mime_type', 'new_uid']

import logging
LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

PAYLOAD_DEFERRED = 'deferred'
PAYLOAD_LOADED = 'loaded'

ROLE_FRONT_COVER = 'front cover'
ROLE_BACK_COVER = 'back cover'
ROLE_OTHER = 'other'
ROLE_NOT_A_PICTURE = 'not a picture'

DEFAULT_MIME_TYPE = 'application/octet-stream'

# Role hints are whole words: "background" is not a back cover.
_BACK_HINT = re.compile(r'(?<![a-z])back(?![a-z])')
_COVER_HINT = re.compile(r'(?<![a-z])cover(?![a-z])')

# Leading bytes of common file types, checked in order.
_MAGIC = [
    (b'\x89PNG\r\n\x1a\n', 'image/png'),
    (b'\xff\xd8\xff', 'image/jpeg'),
    (b'GIF87a', 'image/gif'),
    (b'GIF89a', 'image/gif'),
    (b'BM', 'image/bmp'),
    (b'RIFF', None), # WEBP is checked below
]

def sniff_mime_type(data, filename=None):
    """Guess a MIME type from magic bytes, then from the file name.

    Returns DEFAULT_MIME_TYPE if neither gives an answer.
    """
    for magic, mime_type in _MAGIC:
        if data.startswith(magic):
            if mime_type is None:
                if data[8:12] == b'WEBP':
                    return 'image/webp'
                continue
            return mime_type
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
    return DEFAULT_MIME_TYPE

def new_uid():
    "Return a random non-zero 64-bit UID."
    while True:
        uid = uuid.uuid4().int >> 64
        if uid:
            return uid


class Payload:
    """The bytes of an attachment, loaded or not.

    Attributes:
     + state: PAYLOAD_LOADED or PAYLOAD_DEFERRED.
     + size: The payload size in bytes, known in both states.
     + stream, offset: Where a deferred payload is found.  These are dropped
       once the payload is loaded.
    """
    chunk_size = 1 << 20

    def __init__(self, data=None, *, stream=None, offset=0, size=None):
        if data is not None:
            self._data = bytes(data)
            self.size = len(self._data)
            self.stream = None
            self.offset = None
            self.state = PAYLOAD_LOADED
        else:
            if stream is None or size is None:
                raise ValueError("Deferred Payload needs a stream and a size")
            self._data = None
            self.size = size
            self.stream = stream
            self.offset = offset
            self.state = PAYLOAD_DEFERRED

    def load(self):
        """Return the payload bytes, reading them first if deferred.

        Raises:
         + EOFError, if the stream ends before the payload does.
        """
        if self.state == PAYLOAD_DEFERRED:
            self.stream.seek(self.offset, SEEK_SET)
            data = self.stream.read(self.size)
            if len(data) != self.size:
                raise EOFError("Payload at {} ends after {} of {} bytes"
                               .format(self.offset, len(data), self.size))
            LOG.debug("Loaded {} byte payload at {}"
                      .format(self.size, self.offset))
            self._data = data
            self.stream = None
            self.state = PAYLOAD_LOADED
        return self._data

    def iter_chunks(self, chunk_size=None):
        """Iterate over the payload in chunks without loading it."""
        chunk_size = chunk_size or self.chunk_size
        if self.state == PAYLOAD_LOADED:
            for pos in range(0, self.size, chunk_size):
                yield self._data[pos:pos+chunk_size]
            return
        pos = 0
        while pos < self.size:
            self.stream.seek(self.offset + pos, SEEK_SET)
            chunk = self.stream.read(min([chunk_size, self.size - pos]))
            if not chunk:
                raise EOFError("Payload at {} ends after {} of {} bytes"
                               .format(self.offset, pos, self.size))
            pos += len(chunk)
            yield chunk

    def __len__(self):
        return self.size

    def __repr__(self):
        return "<{} {} size={}>".format(self.__class__.__name__,
                                        self.state, self.size)


class Attachment:
    """An attached file.

    Attributes:
     + uid: Unique non-zero 64-bit identifier.
     + filename, mime_type, description: Strings (description may be '').
     + payload: A Payload instance.  The data property loads it.
     + element: The AttachedFile element this was read from, or None.  As long
       as the attachment is not modified, it is written back by copying the
       element's bytes.
     + store: The AttachmentStore holding this attachment, or None.
    """

    def __init__(self, filename='', mime_type=None, description='', data=b'',
                 uid=None):
        #pylint: disable=too-many-arguments
        if isinstance(data, Payload):
            self._payload = data
        else:
            self._payload = Payload(data)
        self._filename = filename
        if mime_type is None:
            head = data if not isinstance(data, Payload) else b''
            mime_type = sniff_mime_type(head, filename)
        self._mime_type = mime_type
        self._description = description or ''
        self.uid = uid if uid else new_uid()
        self.element = None
        self.store = None
        self.modified = True

    @classmethod
    def from_file(cls, path, description=None, mime_type=None):
        "Create an attachment from the file at path."
        with open(path, 'rb') as stream:
            data = stream.read()
        filename = os.path.basename(path)
        if mime_type is None:
            mime_type = sniff_mime_type(data, filename)
        return cls(filename, mime_type, description or '', data)

    @classmethod
    def from_element(cls, elt):
        "Create an unmodified attachment from an ElementAttachedFile."
        ret = cls(elt.file_name, elt.mime_type, elt.description,
                  elt.payload, elt.uid)
        ret.element = elt
        ret.modified = False
        return ret

    def _set(self, attr, val):
        setattr(self, attr, val)
        self.modified = True

    filename = property(lambda self: self._filename,
                        lambda self, val: self._set('_filename', val))
    mime_type = property(lambda self: self._mime_type,
                         lambda self, val: self._set('_mime_type', val))
    description = property(lambda self: self._description,
                           lambda self, val: self._set('_description', val))

    @property
    def payload(self):
        "The Payload instance."
        return self._payload
    @property
    def data(self):
        "The payload bytes, loaded on demand."
        return self._payload.load()
    @data.setter
    def data(self, val):
        self._set('_payload', val if isinstance(val, Payload)
                  else Payload(val))
    @property
    def size(self):
        "Payload size in bytes."
        return self._payload.size

    @property
    def is_picture(self):
        "True if the MIME type is an image type."
        return (self.mime_type or '').lower().startswith('image/')

    @property
    def role(self):
        "The derived role, see AttachmentStore.role_of()."
        if self.store is not None:
            return self.store.role_of(self)
        return _classify(self, front_cover_taken=False)

    def __repr__(self):
        return "<{} {!r} {} {} bytes>".format(self.__class__.__name__,
                                              self.filename, self.mime_type,
                                              self.size)


def _classify(att, front_cover_taken):
    "Role of att, given whether an earlier image already is the front cover."
    if not att.is_picture:
        return ROLE_NOT_A_PICTURE
    hints = "{} {}".format(att.description, att.filename).lower()
    if _BACK_HINT.search(hints):
        return ROLE_BACK_COVER
    if _COVER_HINT.search(hints) and not front_cover_taken:
        return ROLE_FRONT_COVER
    return ROLE_OTHER


class AttachmentStore:
    """Ordered list of the attachments of a file.

    Attributes:
     + dirty: True if the list was changed since it was read, in which case
       the Attachments element must be regenerated on save.
    """

    def __init__(self, attachments=()):
        self._list = []
        for att in attachments:
            att.store = self
            self._list.append(att)
        self.dirty = False

    @classmethod
    def from_segment(cls, segment):
        "Build the store from the AttachedFile elements of a Segment."
        if segment is None:
            return cls()
        return cls(Attachment.from_element(elt)
                   for elt in segment.attached_files)

    def __iter__(self):
        return iter(list(self._list))
    def __len__(self):
        return len(self._list)
    def __getitem__(self, index):
        return self._list[index]

    @property
    def modified(self):
        "True if the list or any attachment changed."
        return self.dirty or any(att.modified for att in self._list)

    def replace(self, attachments):
        "Replace the whole ordered list."
        for att in self._list:
            att.store = None
        self._list = []
        for att in attachments:
            att.store = self
            self._list.append(att)
        self.dirty = True

    def add(self, attachment):
        "Append an attachment."
        attachment.store = self
        self._list.append(attachment)
        self.dirty = True

    def remove(self, attachment):
        "Remove an attachment."
        self._list.remove(attachment)
        attachment.store = None
        self.dirty = True

    def role_of(self, attachment):
        """Derive the role of an attachment.

        Non-images are ROLE_NOT_A_PICTURE.  An image with the word "back" in
        its description or file name is ROLE_BACK_COVER.  The first image with
        the word "cover" is ROLE_FRONT_COVER.  Any other image is ROLE_OTHER.
        """
        front_taken = False
        for att in self._list:
            role = _classify(att, front_taken)
            if att is attachment:
                return role
            if role == ROLE_FRONT_COVER:
                front_taken = True
        return _classify(attachment, front_taken)

    def pictures(self):
        "Return the attachments that are images."
        return [att for att in self._list if att.is_picture]
