#pylint: disable=too-many-public-methods,too-many-ancestors
"""
Basic Element types: Element, Unsupported, Void, Master, MasterDefer.
"""

from os import SEEK_SET, SEEK_CUR

from . import EbmlException, MAX_DATA_SIZE
from .utility import hex_bytes
from .header import Header
from .container import Container
from .specdata import MATROSKA_SPECS

__all__ = ['Element', 'ElementUnsupported', 'ElementVoid', 'ElementMaster',
           'ElementMasterDefer', 'STATE_PENDING', 'STATE_SUMMARY',
           'STATE_PARSED', 'STATE_SKIPPED', 'STATE_TRUNCATED', 'STATE_NAMES']

STATE_PENDING, STATE_SUMMARY, STATE_PARSED, STATE_SKIPPED, STATE_TRUNCATED \
    = range(5)
STATE_NAMES = {STATE_PENDING: 'pending', STATE_SUMMARY: 'summary',
               STATE_PARSED: 'parsed', STATE_SKIPPED: 'skipped',
               STATE_TRUNCATED: 'truncated'}

class Element:
    """Abstract base class for EBML elements.

    Attributes describing properties intrinsic to the element:
     + header: The element's Header object.
     + ebml_id: Convenience accessor for self.header.ebml_id.
     + size: The size of the element's data.  This is self.header.size, unless
       the header size was unknown or ran past the end of the parent, in which
       case it is the size actually found in the stream.
     + header_size: Convenience accessor for self.header.numbytes.
     + total_size: Equals self.header_size + self.size.
     + name: The (string) name of this EBML element, if known.
     + spec: The associated ElementSpec instance.

    Attributes describing the element's position in the EBML tree:
     + parent: The Container instance containing this element, or None if it
       has not yet been added to a container.  Accessing pos_absolute and
       pos_data_absolute will throw an error if the parent is not set.
     + level: This is self.parent.level + 1 unless self.parent is not an
       Element, in which case it is 0.

    Attributes describing the element's position in a stream:
     + pos_relative: Relative position of the element (the first byte of its
       header) from the beginning of its parent's data.  Should only be set by
       the parent.
     + pos_data_relative: Equals self.pos_relative + self.header_size.
     + pos_end_relative: Equals self.pos_relative + self.total_size.
     + pos_absolute: Absolute position of the element (the first byte of its
       header) in the stream.  Equals self.pos_relative +
       self.parent.pos_data_absolute.
     + pos_data_absolute: Equals self.pos_absolute + self.header_size.
     + pos_end_absolute: Equals self.pos_absolute + self.total_size.

    Attributes describing the element's state:
     + read_state: One of the following values:
       - STATE_PENDING: The element has been initialized but no data has been
         read.
       - STATE_SUMMARY: The element's read_summary() method skipped its
         children.
       - STATE_PARSED: The element's data was read successfully.
       - STATE_SKIPPED: The element's data could not be decoded and was
         skipped.
       - STATE_TRUNCATED: The element's declared size ran past the end of its
         parent or of the stream; only the available part was read.

    A generic element knows where its data is stored in the stream but does not
    know how to interpret it.  Subclasses should reimplement the read_data(),
    read_summary(), and encode() methods, at least.
    """
    #pylint: disable=too-many-instance-attributes

    # Private attributes:
    #  + _extent: The data size found in the stream when it differs from the
    #    size in the header (unknown or truncated size).  None otherwise.

    def __init__(self, header, name='Unknown'):
        self.header = header
        self.spec = MATROSKA_SPECS[header.ebml_id]
        self.parent = None
        self.pos_relative = 0
        self.name = name
        self.read_state = STATE_PENDING
        self._extent = None

    @classmethod
    def new(cls, name_or_id, parent=None, size=0):
        """Create an empty Element.

        This creates an element programatically, as opposed to an element meant
        to be read from a stream.

        Args:
         + name_or_id: If a string, it must be an element name defined in
           MATROSKA_SPECS; the EBML ID will be set from that.  If an integer,
           use that as the EBML ID.
         + parent: The child's parent.  If not None, calls
           parent.add_child(child).
         + size: Initial size of the data part of the element.
        """
        spec = MATROSKA_SPECS[name_or_id]
        ret = cls(Header(ebml_id=spec.ebml_id, size=size), name=spec.name)
        ret.read_state = STATE_PARSED
        if parent is not None:
            parent.add_child(ret)
        return ret

    # Properties

    @property
    def ebml_id(self):
        "Return this element's EBML ID."
        return self.header.ebml_id
    @property
    def size(self):
        "Return the size of this element's data."
        if self._extent is not None:
            return self._extent
        return self.header.size
    @property
    def header_size(self):
        "Return the size of the EBML header."
        return self.header.numbytes
    @property
    def total_size(self):
        "Return the total size of this element in the stream."
        return self.header_size + self.size
    @property
    def level(self):
        "Calculate the element level in the EBML tree."
        if isinstance(self.parent, Element):
            return self.parent.level + 1
        return 0
    @property
    def root(self):
        "Return the top-level Container (usually a File), or None."
        if self.parent is None:
            return None
        return self.parent.root
    @property
    def pos_data_relative(self):
        "Return the position of this element's data relative to its parent."
        return self.pos_relative + self.header_size
    @property
    def pos_end_relative(self):
        "Return the position of this element's end relative to its parent."
        return self.pos_relative + self.total_size
    @property
    def pos_absolute(self):
        "Return the absolute position of this element in the stream."
        return self.pos_relative + self.parent.pos_data_absolute
    @property
    def pos_data_absolute(self):
        "Return the absolute position of this element's data in the stream."
        return self.pos_absolute + self.header_size
    @property
    def pos_end_absolute(self):
        "Return the absolute position of this element's end in the stream."
        return self.pos_absolute + self.total_size
    @property
    def unknown_size(self):
        "True if the header did not declare a size."
        return self.header.size is None

    def __bool__(self):
        return True

    def __repr__(self):
        return '<{0} [{1}] {s.name!r} size={s.header_size}+{s.size} ' \
            '@{s.pos_relative}>' \
                .format(self.__class__.__name__,
                        hex_bytes(self.header.encoded_id), s=self)

    def __str__(self):
        if self.name == 'Unknown':
            name = "[{}]".format(hex_bytes(self.header.encoded_id))
        else:
            name = self.name
        return "{0} {1} ({s.header_size}+{s.size} @{s.pos_relative})" \
                .format(self.__class__.__name__, name, s=self)

    # Sizes found in the stream

    def truncate(self, available):
        """Clamp the data size to the 'available' bytes left in the parent.

        The header keeps its declared size; self.size becomes 'available'.
        """
        self._extent = max([0, available])
        self.read_state = STATE_TRUNCATED

    def set_extent(self, size):
        "Record the data size measured for an element of unknown size."
        self._extent = size

    # Read and write

    def read_data(self, stream, seekfirst=True):
        """Read this element's data from a binary stream.

        After this method is run, the stream's position must be immediately
        after the current element, i.e. its absolute position will be
        self.pos_absolute + self.total_size.  Sets self.read_state to
        STATE_PARSED unless the element was truncated.

        This is an abstract method that must be reimplemented.

        Args:
         + stream: A binary stream.
         + seekfirst: If True, first seek the stream to self.pos_data_absolute.
           Otherwise the stream position must already be equal to
           self.pos_data_absolute.
        Raises:
         + DecodeError, EOFError: if the data cannot be decoded.  The caller
           marks the element as skipped.
        """
        raise NotImplementedError

    def read_summary(self, stream, seekfirst=True):
        """Read some of the data of the element.

        This method behaves like read_data().  Subclasses may reimplement this
        to only partially load the element.  In that case, the subclass should
        set self.read_state to STATE_SUMMARY.  The default implementation is to
        dispatch to self.read_data().
        """
        self.read_data(stream, seekfirst)

    def mark_parsed(self):
        "Set read_state to STATE_PARSED unless the element was truncated."
        if self.read_state != STATE_TRUNCATED:
            self.read_state = STATE_PARSED

    def encode(self, numbytes=None):
        """Encode this element (header and data) to a bytes object.

        Args:
         + numbytes: If given, the number of bytes to use for the header.  This
           lets a rewritten element fill an exact amount of space.
        """
        raise NotImplementedError

    def _encode_header(self, data_size, numbytes=None):
        "Encode a header for data_size bytes of data."
        header = Header(ebml_id=self.ebml_id, size=data_size)
        if numbytes is not None:
            header.numbytes = numbytes
        return header.encode()

    def read_raw(self, stream):
        """Return the raw byte stream corresponding to this element."""
        stream.seek(self.pos_absolute, SEEK_SET)
        return stream.read(self.total_size)


class ElementUnsupported(Element):
    """Element we don't want to handle.

    This Element ignores its data and cannot be encoded; its bytes can only be
    copied from the stream it was read from.
    """

    def read_data(self, stream, seekfirst=True):
        "Ignore the element's data."
        if seekfirst:
            stream.seek(self.pos_data_absolute, SEEK_SET)
        stream.seek(self.size, SEEK_CUR)
        self.mark_parsed()

    def encode(self, numbytes=None):
        raise EbmlException("Cannot encode unsupported element {!r}"
                            .format(self))


class ElementVoid(Element):
    """Void element.

    This class ignores its data on read and encodes zero bytes.
    """

    @classmethod
    def of_size(cls, total_size):
        """Create a Void element with a specified total size.

        Args:
         + total_size: Total size (data plus header) of the Void element.  This
           must be an integer between 2 and 2^56+7, inclusive.
        Raises:
         + EbmlException, if total_size < 2.
        """
        if total_size < 2:
            raise EbmlException("Can't create Void of size < 2")
        ret = cls.new('Void')
        # A 1-byte ID plus up to 8 bytes of size: find a header width that
        # leaves a valid data size.
        for header_size in range(2, 10):
            data_size = total_size - header_size
            if data_size < 0 or data_size > MAX_DATA_SIZE:
                continue
            ret.header.size = data_size
            if ret.header.numbytes_min <= header_size:
                ret.header.numbytes = header_size
                return ret
        raise EbmlException("Can't create Void of size {}".format(total_size))

    def read_data(self, stream, seekfirst=True):
        "Ignore the element's data."
        if seekfirst:
            stream.seek(self.pos_data_absolute, SEEK_SET)
        stream.seek(self.size, SEEK_CUR)
        self.mark_parsed()

    def encode(self, numbytes=None):
        return self._encode_header(self.size, numbytes or self.header_size) \
            + b'\x00' * self.size


class ElementMaster(Element, Container):
    """Generic Master element.

    An EBML Master element is an element type that contains other elements.
    """

    def __init__(self, header, name='Unknown'):
        Element.__init__(self, header, name)
        # It doesn't matter what Container sets its _pos_data_absolute
        # attribute to since self.pos_data_absolute uses the Element
        # property of that name.
        Container.__init__(self, 0)

    @property
    def limit_absolute(self):
        "Absolute position past which children may not extend."
        if self.size is None:
            # Unknown size: bounded by the parent.
            return self.parent.limit_absolute
        return self.pos_data_absolute + self.size

    def accepts(self, spec):
        "Decide if an element with this spec may be read as a child."
        return spec.name == 'Unknown' or spec.is_child(self.spec)

    def __str__(self):
        return Element.__str__(self) + ": {} child{}" \
                      .format(len(self), "ren" if len(self) != 1 else "")

    def read_data(self, stream, seekfirst=True):
        """Read all child elements.

        For an element of unknown size this reads until the first element that
        is not an allowed child, and records the size found.
        """
        end = Container.read(self, stream, 0, self.size, seekfirst=seekfirst)
        if self.size is None:
            self.set_extent(end)
        self.mark_parsed()

    def encode(self, numbytes=None):
        data = b''.join(child.encode() for child in self
                        if child.name != 'Void')
        return self._encode_header(len(data), numbytes) + data


class ElementMasterDefer(ElementMaster):
    """Master element with deferred reading.

    This is exactly the same as an Master element, except that it has a
    read_summary() method that skips over its children.  An element of unknown
    size still has to walk its children to find where it ends.
    """
    def read_summary(self, stream, seekfirst=True):
        "Skip over child elements."
        if self.size is None:
            self.read_data(stream, seekfirst)
            return
        if seekfirst:
            stream.seek(self.pos_data_absolute, SEEK_SET)
        stream.seek(self.size, SEEK_CUR)
        if self.read_state != STATE_TRUNCATED:
            self.read_state = STATE_SUMMARY
