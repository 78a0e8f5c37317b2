#pylint: disable=too-many-public-methods
"""
EBML Container types: Container and File.
"""

from collections import namedtuple
from io import IOBase
from os import SEEK_SET, SEEK_CUR, SEEK_END
from datetime import datetime

from . import DecodeError
from .header import Header
from .specdata import MATROSKA_SPECS

__all__ = ['Container', 'File', 'Defect']

import logging
LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)


# A recoverable problem found while reading.  'position' is the absolute
# stream position of the element (or of the bad header), 'state' is one of the
# element read states.
Defect = namedtuple('Defect', ['position', 'name', 'state', 'message'])


class Container(list):
    """A list of Element instances, in stream order.

    Subclassed by File and ElementMaster.  Reads its children from a seekable
    binary stream.

    Attributes:
     + pos_data_absolute: The position in the EBML stream where the first child
       starts.  This is actually a property since ElementMaster reimplements
       it as a property.
     + limit_absolute: The absolute position that no child may extend past.
     + end_last_child: The relative position of the end of the last child
       element, or zero if no children.
    """

    def __init__(self, pos_data_absolute):
        super().__init__()
        self._pos_data_absolute = pos_data_absolute

    @property
    def pos_data_absolute(self):
        "Return pos_data_absolute property."
        return self._pos_data_absolute
    @pos_data_absolute.setter
    def pos_data_absolute(self, val):
        "Set pos_data_absolute property."
        self._pos_data_absolute = val
    @property
    def limit_absolute(self):
        "Return the absolute position past which children may not extend."
        raise NotImplementedError
    @property
    def end_last_child(self):
        "Return the relative position of the end of the last child."
        if len(self):
            return max([child.pos_end_relative for child in self])
        return 0
    @property
    def unknown_size(self):
        "Only Elements can have an unknown size."
        return False

    # Reimplement default equality testing (overwriting list) so instances are
    # hashable.
    def __hash__(self):
        return id(self)
    def __eq__(self, other):
        return self is other
    def __ne__(self, other):
        return self is not other

    def children_named(self, name):
        "Return an iterator over all children with a given name."
        return (child for child in self if child.name == name)

    def child_named(self, name):
        "Return the first child with the given name, or None."
        try:
            return next(self.children_named(name))
        except StopIteration:
            return None

    def children_with_id(self, ebml_id):
        "Return an iterator over all children with a given ebml_id."
        return (child for child in self if child.ebml_id == ebml_id)

    def accepts(self, spec):
        "Decide if an element with this spec may be read as a child."
        #pylint: disable=no-self-use,unused-argument
        return True

    # Printing

    def __repr__(self):
        return "{}({})".format(self.__class__.__name__, self.pos_data_absolute)

    def __str__(self):
        return "{}: {} child{}".format(self.__class__.__name__, len(self),
                                       "ren" if len(self) != 1 else "")

    # Editing

    def add_child(self, child, pos=None):
        """Add a child to self at pos.

        This sets child.parent and child.pos_relative.  If pos is None, add
        after all current children.
        """
        child.parent = self
        if pos is not None:
            child.pos_relative = pos
        else:
            child.pos_relative = self.end_last_child
        self.append(child)

    def remove_child(self, child):
        """Remove a child.

        This sets child.parent to None.

        Args:
         + child: Either an index or an Element with self as its parent.
        """
        if isinstance(child, int):
            child = self[child]
        self.remove(child)
        child.parent = None

    # Defects

    @property
    def root(self):
        "Return the top-level Container."
        return self

    def defect(self, position, name, state, message):
        "Log a recoverable problem and record it on the root File."
        LOG.warning("{} at {}: {}".format(name, position, message))
        root = self.root
        if root is not None and hasattr(root, 'defects'):
            root.defects.append(Defect(position, name, state, message))

    # Reading

    def read(self, stream, start, length, *, summary=False, seekfirst=True):
        """Read elements from a seekable binary stream.

        Args:
         + stream: A seekable binary stream.
         + start: The position in the stream to begin reading, relative to
           self.pos_data_absolute.
         + length: Stop after reading this many bytes, or at self's limit if
           None (an element of unknown size).
         + summary: Passed to self.read_element().
         + seekfirst: If True first seek to self.pos_data_absolute + start.
           Otherwise the stream must already be at that position.
        Returns:
           The relative position where reading stopped.

        A header that cannot be decoded ends the child sequence, unless
        self.recover() finds a place to continue.
        """
        if seekfirst:
            stream.seek(self.pos_data_absolute + start, SEEK_SET)
        cur_pos = start
        end = self.limit_absolute - self.pos_data_absolute
        if length is not None:
            end = min([end, start + length])
        while cur_pos < end:
            try:
                child = self.read_element(stream, cur_pos, summary=summary,
                                          seekfirst=False)
            except (DecodeError, EOFError) as exc:
                from .element import STATE_SKIPPED
                self.defect(self.pos_data_absolute + cur_pos, 'Header',
                            STATE_SKIPPED, "bad element header ({})"
                            .format(exc))
                resume = self.recover(stream, cur_pos, end)
                if resume is None:
                    # Reading stops at the bad header
                    break
                cur_pos = resume
                stream.seek(self.pos_data_absolute + cur_pos, SEEK_SET)
                continue
            if child is None:
                # Not a child of this unknown-size element
                break
            cur_pos += child.total_size
        return min([cur_pos, end])

    def recover(self, stream, cur_pos, end):
        """Return a relative position to continue reading after a bad header.

        Returns None to stop reading this container, which is the default.
        """
        #pylint: disable=no-self-use,unused-argument
        return None

    def resync(self, stream, start, end, ebml_ids, window):
        """Scan for the header of one of ebml_ids.

        Search the relative region [start, start+window) for a header whose ID
        is in ebml_ids and whose size fits before 'end'.  Return the relative
        position found or None.
        """
        region_end = min([end, start + window])
        stream.seek(self.pos_data_absolute + start, SEEK_SET)
        data = stream.read(region_end - start)
        lengths = sorted(set((ebml_id.bit_length() + 7) // 8
                             for ebml_id in ebml_ids))
        for offset in range(len(data)):
            for length in lengths:
                candidate = int.from_bytes(data[offset:offset+length], 'big')
                if candidate not in ebml_ids:
                    continue
                pos = start + offset
                stream.seek(self.pos_data_absolute + pos, SEEK_SET)
                try:
                    header = Header(stream)
                except (DecodeError, EOFError):
                    continue
                if header.size is None \
                   or pos + header.numbytes + header.size <= end:
                    LOG.info("Resynchronized at {} on [{:X}]"
                             .format(self.pos_data_absolute + pos,
                                     header.ebml_id))
                    return pos
        return None

    def read_element(self, stream, start, *, summary=False, seekfirst=True):
        """Read a single element from a seekable binary stream.

        Args:
         + stream: A seekable binary stream.
         + start: The position in the stream to begin reading, relative to
           self.pos_data_absolute.
         + summary: If True, call child.read_summary() instead of
           child.read_data().
         + seekfirst: If True first seek to self.pos_data_absolute + start.
           Otherwise the stream must already be at that position.
        Returns:
           The child element that was just read.  If self has unknown size and
           the element is not one of its allowed children, rewind the stream
           and return None.
        Raises:
         + DecodeError, EOFError: if the element header cannot be read, or if
           it declares an unknown size for an element that has no children to
           mark its end.

        The current position in the stream after this function returns is
        immediately after the child element's data, as found in the stream.

        If the child could not be decoded, it is marked STATE_SKIPPED.  If it
        ran past the end of self, it is marked STATE_TRUNCATED.  Either way a
        defect is recorded, and an atomic child is removed from self since it
        has no usable value; it is still returned so the caller can step over
        it.

        If the current instance has a method named "parse_ELT" and the current
        child element's name is "ELT", run that method with the child element
        and the stream as arguments.
        """
        from .element import STATE_SKIPPED, STATE_TRUNCATED
        if seekfirst:
            stream.seek(self.pos_data_absolute + start, SEEK_SET)
        header = Header(stream)
        spec = MATROSKA_SPECS[header.ebml_id]
        if self.unknown_size and not self.accepts(spec):
            stream.seek(-header.numbytes, SEEK_CUR)
            return None
        if header.size is None and not issubclass(spec.cls, Container):
            raise DecodeError("{} [{:X}] has unknown size"
                              .format(spec.name, header.ebml_id))

        child = spec(header)
        self.add_child(child, start)
        available = self.limit_absolute - child.pos_data_absolute
        if header.size is not None and header.size > available:
            child.truncate(available)
            self.defect(child.pos_absolute, child.name, STATE_TRUNCATED,
                        "declared size {} but only {} bytes left"
                        .format(header.size, max([0, available])))

        try:
            if summary:
                child.read_summary(stream, seekfirst=False)
            else:
                child.read_data(stream, seekfirst=False)
        except (DecodeError, EOFError) as exc:
            child.read_state = STATE_SKIPPED
            self.defect(child.pos_absolute, child.name, STATE_SKIPPED,
                        str(exc) or exc.__class__.__name__)
        # A child that stopped early leaves the stream inside its data.
        stream.seek(child.pos_end_absolute, SEEK_SET)

        if child.read_state in (STATE_SKIPPED, STATE_TRUNCATED) \
           and not isinstance(child, Container):
            self.remove_child(child)
            return child

        hook = getattr(self, 'parse_' + child.name, None)
        if hook is not None:
            hook(child, stream)
        return child


class File(Container):
    """A container that can read EBML elements from a seekable binary stream.

    Attributes:
     + stream: The stream to read.
     + stream_size: The size of self.stream.
     + defects: List of Defect records found while reading.
     + resync_window: Number of bytes scanned for a level-0 element when the
       stream does not start with one.
    """

    resync_window = 1 << 16

    def __init__(self, f, summary=True):
        """Args:
         + f: Either a file name or a seekable binary stream.
         + summary: If True, call self.read_summary().
        """
        super().__init__(0)
        self.defects = []
        if isinstance(f, IOBase):
            self.stream = f
            self.owns_stream = False
        else:
            self.stream = open(f, 'rb')
            self.owns_stream = True
        self.stream.seek(0, SEEK_END)
        self.stream_size = self.stream.tell()
        self.stream.seek(0, SEEK_SET)

        if summary:
            self.read_summary()

    def __enter__(self):
        return self

    def __exit__(self, _var1, _var2, _var3):
        self.close()

    def __repr__(self):
        return "<{} stream={!r} size={}>" \
            .format(self.__class__.__name__, self.stream, self.stream_size)

    def __str__(self):
        return "{}: stream={!r}, size={}, {} child{}" \
            .format(self.__class__.__name__, self.stream,
                    self.stream_size, len(self),
                    "ren" if len(self) != 1 else "")

    @property
    def limit_absolute(self):
        return self.stream_size

    @property
    def segment(self):
        "Return the first Segment, or None."
        return self.child_named('Segment')

    def close(self):
        "Close self.stream if it was opened here."
        if self.stream is not None and self.owns_stream:
            self.stream.close()
        self.stream = None

    def recover(self, stream, cur_pos, end):
        "Look for the next EBML header or Segment."
        ids = set([MATROSKA_SPECS['EBML'].ebml_id,
                   MATROSKA_SPECS['Segment'].ebml_id])
        return self.resync(stream, cur_pos + 1, end, ids, self.resync_window)

    def parse_EBML(self, ebml, _):
        "Check the document type."
        #pylint: disable=no-self-use,invalid-name
        if not ebml.check_read_handled():
            LOG.warning("Header element {} indicates reading the file "
                        "will probably fail".format(ebml))

    def read_summary(self):
        """Read a summary of the stream.

        This finds each level-zero element and calls read_summary() on it.
        """
        start_time = datetime.now()
        self.read(self.stream, 0, self.stream_size,
                  summary=True, seekfirst=True)
        read_time = datetime.now() - start_time
        #pylint: disable=maybe-no-member
        LOG.info("Read summary in {:.3f} seconds" \
                 .format(read_time.total_seconds()))
