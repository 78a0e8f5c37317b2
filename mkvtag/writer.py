#pylint: disable=logging-format-interpolation
"""
Writer: regenerate the Tags and Attachments of a Matroska file.

The output is produced from the source stream in one pass.  Every level-1
element of the Segment is copied through unchanged, except:

 + the old Tags (and, if the attachments changed, Attachments) elements,
   which become Void elements of the same size, so that nothing moves;
 + the new Tags and Attachments elements, which are put in the first Void
   space that fits them or appended at the end of the Segment;
 + the SeekHead elements, whose entries for Tags and Attachments are
   rewritten in place;
 + the Segment header, whose size is updated.

Matroska positions (SeekHead, Cues) are relative to the start of the Segment
data, so a wider Segment header does not invalidate them.
"""

from os import SEEK_SET

from . import Inconsistent
from .header import Header
from .specdata import MATROSKA_SPECS, ID_SEGMENT, ID_TAGS, ID_ATTACHMENTS, \
    ID_SEEK_HEAD, ID_VOID
from .element import ElementMaster, ElementVoid, STATE_PARSED
from .data_elements import ElementSeek, ElementAttachedFile
from .attachments import Payload

__all__ = ['TagWriter', 'COPY_CHUNK_SIZE', 'copy_range']

import logging
LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

COPY_CHUNK_SIZE = 1 << 20

def copy_range(source, out, start, size):
    "Copy size bytes at absolute position start from source to out."
    source.seek(start, SEEK_SET)
    while size > 0:
        chunk = source.read(min([COPY_CHUNK_SIZE, size]))
        if not chunk:
            raise EOFError("Source ended {} bytes early".format(size))
        out.write(chunk)
        size -= len(chunk)

def write_void(out, total_size):
    "Write a Void element of total_size bytes."
    void = ElementVoid.of_size(total_size)
    out.write(void.header.encode())
    size = void.size
    zeros = b'\x00' * min([COPY_CHUNK_SIZE, size])
    while size > 0:
        out.write(zeros[:size])
        size -= len(zeros[:size])


class SourceRange:
    "Bytes to copy from the source stream."
    #pylint: disable=too-few-public-methods
    def __init__(self, start, size):
        self.start = start
        self.size = size


class PendingElement:
    """A level-1 element to write, whose data is a list of parts.

    Each part is a bytes object, a Payload or a SourceRange, so large
    attachments are never held in memory.
    """

    def __init__(self, ebml_id, parts):
        self.ebml_id = ebml_id
        self.parts = parts
        self.data_size = sum(len(part) if isinstance(part, bytes)
                             else part.size for part in parts)

    @classmethod
    def from_element(cls, elt):
        "Encode the children of a master element into one part."
        data = b''.join(child.encode() for child in elt)
        return cls(elt.ebml_id, [data])

    def header(self, numbytes=None):
        "Return the Header, of the given width if possible."
        header = Header(ebml_id=self.ebml_id, size=self.data_size)
        if numbytes is not None:
            header.numbytes = numbytes
        return header

    @property
    def total_size(self):
        "Total size with the narrowest header."
        return self.header().numbytes + self.data_size

    def fit(self, space):
        """Return a header width such that the element fits in space bytes.

        The element fits if it fills the space exactly, or leaves at least 2
        bytes for a Void.  Returns None if it can't fit.
        """
        header = self.header()
        for numbytes in range(header.numbytes_min, header.numbytes_max + 1):
            leftover = space - numbytes - self.data_size
            if leftover == 0 or leftover >= 2:
                return numbytes
        return None

    def write(self, out, source, numbytes=None):
        "Write the element.  Return the number of bytes written."
        header = self.header(numbytes)
        out.write(header.encode())
        for part in self.parts:
            if isinstance(part, bytes):
                out.write(part)
            elif isinstance(part, Payload):
                for chunk in part.iter_chunks(COPY_CHUNK_SIZE):
                    out.write(chunk)
            else:
                copy_range(source, out, part.start, part.size)
        return header.numbytes + self.data_size


# Kinds of pieces of the new Segment data.
COPY, FREE, PLACED, SEEKHEAD = range(4)

class Piece:
    """A run of the new Segment data.

    Attributes:
     + kind: COPY (source bytes), FREE (written as a Void), PLACED (a
       PendingElement) or SEEKHEAD (a copied SeekHead, maybe rewritten).
     + start: Relative position in the Segment data.
     + size: Size in bytes.
     + item: The PendingElement or SeekHead element, if any.
     + numbytes: Header width of a PLACED element.
    """
    #pylint: disable=too-few-public-methods
    def __init__(self, kind, start, size, item=None, numbytes=None):
        #pylint: disable=too-many-arguments
        self.kind = kind
        self.start = start
        self.size = size
        self.item = item
        self.numbytes = numbytes

    def __repr__(self):
        return "<Piece {} @{}+{}>".format(
            ('copy', 'free', 'placed', 'seekhead')[self.kind],
            self.start, self.size)


class TagWriter:
    """Write a copy of a file with new Tags and Attachments.

    Attributes:
     + ebml_file: The container.File read from the source stream.
     + tags: The Tags model to write.
     + attachments: The AttachmentStore.  Attachments are only regenerated if
       it was modified; an unmodified attachment is copied from the source.
    """

    def __init__(self, ebml_file, tags, attachments=None):
        self.ebml_file = ebml_file
        self.source = ebml_file.stream
        self.tags = tags
        self.attachments = attachments

    @property
    def rewrite_attachments(self):
        "True if the Attachments element has to be regenerated."
        return self.attachments is not None and self.attachments.modified

    # Building the new elements

    def _attachment_parts(self, att):
        "Parts of one AttachedFile element."
        elt = att.element
        if not att.modified and elt is not None \
           and elt.root is self.ebml_file and elt.read_state == STATE_PARSED:
            return [SourceRange(elt.pos_absolute, elt.total_size)]
        elt = ElementAttachedFile.from_attachment(att)
        head = b''
        payload = None
        for child in elt:
            if child.name == 'FileData':
                payload = child.value
            else:
                head += child.encode()
        if payload is None:
            payload = Payload(b'')
        data_header = Header(ebml_id=MATROSKA_SPECS['FileData'].ebml_id,
                             size=payload.size).encode()
        size = len(head) + len(data_header) + payload.size
        return [Header(ebml_id=elt.ebml_id, size=size).encode() + head
                + data_header, payload]

    def new_elements(self):
        "Return the PendingElements to place, Tags first."
        ret = []
        tags_elt = self.tags.to_element() if self.tags is not None else None
        if tags_elt is not None:
            ret.append(PendingElement.from_element(tags_elt))
        if self.rewrite_attachments and len(self.attachments):
            parts = []
            for att in self.attachments:
                parts.extend(self._attachment_parts(att))
            ret.append(PendingElement(ID_ATTACHMENTS, parts))
        return ret

    # Layout

    def regenerated_ids(self):
        "EBML IDs of the level-1 elements being replaced."
        ret = {ID_TAGS}
        if self.rewrite_attachments:
            ret.add(ID_ATTACHMENTS)
        return ret

    def layout(self, segment):
        """Split the Segment data into Pieces.

        Old elements being replaced and Voids become FREE; adjacent FREE
        pieces are merged.  Bytes between parsed children are copied.
        """
        replaced = self.regenerated_ids()
        pieces = []
        def add(kind, start, size, item=None):
            if size <= 0:
                return
            if kind == FREE and pieces and pieces[-1].kind == FREE \
               and pieces[-1].start + pieces[-1].size == start:
                pieces[-1].size += size
                return
            pieces.append(Piece(kind, start, size, item))

        cur = 0
        for child in segment:
            if child.pos_relative > cur:
                add(COPY, cur, child.pos_relative - cur)
            if child.ebml_id in replaced or child.ebml_id == ID_VOID:
                add(FREE, child.pos_relative, child.total_size)
            elif child.ebml_id == ID_SEEK_HEAD \
                 and child.read_state == STATE_PARSED:
                add(SEEKHEAD, child.pos_relative, child.total_size, child)
            else:
                add(COPY, child.pos_relative, child.total_size)
            cur = max([cur, child.pos_end_relative])
        if segment.size > cur:
            add(COPY, cur, segment.size - cur)
        return pieces

    @staticmethod
    def place(pieces, pending, end):
        """Put pending in the first FREE piece that fits it.

        If no piece fits, append it at relative position 'end'.  Return its
        relative position.
        """
        for i, piece in enumerate(pieces):
            if piece.kind != FREE:
                continue
            numbytes = pending.fit(piece.size)
            if numbytes is None:
                continue
            used = numbytes + pending.data_size
            new = [Piece(PLACED, piece.start, used, pending, numbytes)]
            if piece.size > used:
                new.append(Piece(FREE, piece.start + used, piece.size - used))
            pieces[i:i+1] = new
            return piece.start
        pieces.append(Piece(PLACED, end, pending.total_size, pending))
        return end

    def rewrite_seek_heads(self, pieces, positions):
        """Rewrite SeekHead pieces for the new positions.

        Entries for replaced elements are dropped; entries for the new
        elements are added to the first SeekHead if it still fits in its old
        space plus any FREE space right after it.
        """
        replaced = self.regenerated_ids()
        first = True
        for i, piece in enumerate(pieces):
            if piece.kind != SEEKHEAD:
                continue
            old = piece.item
            stale = [seek for seek in old.children_named('Seek')
                     if seek.seek_id in replaced]
            if not stale and not (first and positions):
                first = False
                continue
            kept = [(seek.seek_id, seek.seek_pos)
                    for seek in old.children_named('Seek')
                    if seek.seek_id not in replaced]
            space = piece.size
            following = pieces[i+1] if i + 1 < len(pieces) else None
            if following is not None and following.kind == FREE:
                space += following.size
            candidates = [kept]
            if first:
                candidates.insert(0, kept + positions)
            for entries in candidates:
                pending = _seek_head(entries)
                numbytes = pending.fit(space)
                if numbytes is None:
                    continue
                if entries is kept and first and positions:
                    LOG.warning("SeekHead at {} has no room for new entries; "
                                "dropping them".format(piece.start))
                self._replace_seek_head(pieces, i, pending, numbytes, space)
                break
            else:
                LOG.warning("Cannot rewrite SeekHead at {}".format(piece.start))
            first = False

    @staticmethod
    def _replace_seek_head(pieces, i, pending, numbytes, space):
        piece = pieces[i]
        used = numbytes + pending.data_size
        new = [Piece(PLACED, piece.start, used, pending, numbytes)]
        if space > used:
            new.append(Piece(FREE, piece.start + used, space - used))
        end = i + 2 if space > piece.size else i + 1
        pieces[i:end] = new

    # Writing

    def write(self, out):
        """Write the new file to the binary stream out.

        Raises:
         + Inconsistent, if the source has no Segment.
         + OSError, EOFError: if reading or writing fails.
        """
        segment = self.ebml_file.segment
        if segment is None:
            raise Inconsistent("No Segment to write tags into")
        pieces = self.layout(segment)
        end = segment.size
        positions = []
        for pending in self.new_elements():
            pos = self.place(pieces, pending, end)
            if pos == end:
                end += pending.total_size
            positions.append((pending.ebml_id, pos))
            LOG.debug("Placed [{:X}] at {}".format(pending.ebml_id, pos))
        self.rewrite_seek_heads(pieces, positions)

        copy_range(self.source, out, 0, segment.pos_absolute)
        if segment.unknown_size:
            copy_range(self.source, out, segment.pos_absolute,
                       segment.header_size)
        else:
            header = Header(ebml_id=ID_SEGMENT, size=end)
            header.numbytes = max([segment.header_size, header.numbytes_min])
            out.write(header.encode())
        base = segment.pos_data_absolute
        for piece in pieces:
            if piece.kind in (COPY, SEEKHEAD):
                copy_range(self.source, out, base + piece.start, piece.size)
            elif piece.kind == FREE:
                write_void(out, piece.size)
            else:
                piece.item.write(out, self.source, piece.numbytes)
        tail = self.ebml_file.stream_size - segment.pos_end_absolute
        if tail > 0:
            copy_range(self.source, out, segment.pos_end_absolute, tail)
        LOG.info("Wrote {} Segment bytes ({} pieces)".format(end, len(pieces)))


def _seek_head(entries):
    "PendingElement for a SeekHead with (ebml_id, position) entries."
    elt = ElementMaster.new('SeekHead')
    for ebml_id, pos in entries:
        elt.add_child(ElementSeek.new_index(ebml_id, pos))
    return PendingElement.from_element(elt)
