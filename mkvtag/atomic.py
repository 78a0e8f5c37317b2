#pylint: disable=too-many-public-methods,too-many-ancestors
"""
Atomic elements.
"""

from os import SEEK_SET, SEEK_CUR
from struct import pack, unpack
from datetime import datetime, timedelta

from . import DecodeError
from .utility import hex_bytes, numbytes_uint
from .header import id_length
from .element import Element
from .specdata import MATROSKA_SPECS
from .attachments import Payload

__all__ = ['ElementAtomic', 'ElementRaw', 'ElementUnsigned', 'ElementSigned',
           'ElementBoolean', 'ElementFloat', 'ElementString',
           'ElementUnicode', 'ElementDate', 'ElementID', 'ElementBinary']

class ElementAtomic(Element):
    """Base class for all elements that directly interpret their data.

    The data for these elements is read and parsed immediately when reading
    from a stream.  The raw data is passed through decode() and then stored in
    self.value.  When writing, self.value is passed through encode_value() to
    recover the raw data.  Subclasses should reimplement these methods.

    The value property is settable.  When it is set, it passes the new value
    through the set_hook() method, which subclasses can use to validate and
    translate the value.

    New atomic elements can be created with new_with_value().

    Attributes:
     + value: The decoded value of this element.  This is a read-write property.
     + default_val: The value to use for an uninitialized element.
     + allowed_len: A list of integers, or None.  If not None, the size of any
       raw data to be read must be contained in allowed_len.
    """
    # Override these in subclasses
    default_val = None
    allowed_len = None

    def __init__(self, header, name='Unknown'):
        super().__init__(header, name)
        self._value = getattr(self.spec, 'default', self.default_val)

    @classmethod
    def new_with_value(cls, name_or_id, value=None, parent=None):
        """Create a new atomic element with a specified value.

        Args:
         + name_or_id, parent: As in Element.new.
         + value: Value to use.  If not specified, use the spec default or
           default_val.
        """
        elt = cls.new(name_or_id, parent)
        if value is not None:
            elt.value = value
        return elt

    @property
    def value(self):
        "Getter for the value property."
        return self._value
    @value.setter
    def value(self, val):
        """Setter for the value property.

        Runs self.set_hook(), a hook for subclasses.  Raises ValueError if val
        is not a valid value.
        """
        self._value = self.set_hook(val)

    def read_data(self, stream, seekfirst=True):
        if seekfirst:
            stream.seek(self.pos_data_absolute, SEEK_SET)
        data = stream.read(self.size)
        if len(data) != self.size:
            raise EOFError("Unexpectedly reached end of stream.")
        if self.allowed_len is not None and self.size not in self.allowed_len:
            raise DecodeError("{}: data has length {}, should be in {!r}" \
                              .format(self.__class__.__name__,
                                      self.size, self.allowed_len))
        try:
            self.value = self.decode(data)
        except ValueError as exc:
            raise DecodeError("{}: {}".format(self.name, exc))
        self.mark_parsed()

    def encode(self, numbytes=None):
        data = self.encode_value(self.value)
        return self._encode_header(len(data), numbytes) + data

    # Virtual

    def set_hook(self, val):
        """Hook for setting the value property.

        Return the new value.  Raise ValueError if val is not a valid value.
        Subclasses should probably call super().set_hook().
        """
        #pylint: disable=no-self-use
        return val

    def decode(self, data):
        """Decode the value from a bytes object.

        Return the decoded value.  Does not set self.value.
        """
        raise NotImplementedError

    def encode_value(self, val):
        "Encode a value to a bytes object of minimal size."
        raise NotImplementedError

    def __str__(self):
        return "{}: {!r}".format(super().__str__(), self.value)


class ElementRaw(ElementAtomic):
    "Raw byte string."
    default_val = b''

    def set_hook(self, val):
        if not isinstance(val, (bytes, bytearray)):
            raise ValueError("Attempt to set an invalid value {!r}: "
                             "must be a bytes object".format(val))
        return super().set_hook(bytes(val))

    def decode(self, data):
        return data

    def encode_value(self, val):
        return val

    def __str__(self):
        if len(self.value) > 32:
            val_str = "[size {}]".format(len(self.value))
        else:
            val_str = hex_bytes(self.value)
        return "{}: {}".format(Element.__str__(self), val_str)


class ElementUnsigned(ElementAtomic):
    "Unsigned integer."
    signed = False
    default_val = 0
    allowed_len = [0, 1, 2, 3, 4, 5, 6, 7, 8]

    def set_hook(self, val):
        if not isinstance(val, int):
            raise ValueError("Attempt to set EBML integer value to "
                             "non-integer {!r}".format(val))
        if val >= (1 << 64):
            raise ValueError("Cannot encode integer {} >= 2^64".format(val))
        if val < 0 and not self.signed:
            raise ValueError("Tried to set Unsigned to the negative value {}"
                             .format(val))
        return super().set_hook(val)

    def decode(self, data):
        return int.from_bytes(data, byteorder='big', signed=self.signed)

    def encode_value(self, val):
        if self.signed:
            size = 1
            while not -(1 << (8*size - 1)) <= val < (1 << (8*size - 1)):
                size += 1
        else:
            size = numbytes_uint(val)
        return val.to_bytes(size, byteorder='big', signed=self.signed)


class ElementSigned(ElementUnsigned):
    "Signed integer."
    signed = True


class ElementBoolean(ElementUnsigned):
    "Boolean value."
    default_val = False

    def set_hook(self, val):
        return bool(super().set_hook(int(val)))

    def encode_value(self, val):
        return b'\x01' if val else b'\x00'

    def __str__(self):
        return "{}: {!r}".format(Element.__str__(self), self.value)


class ElementFloat(ElementAtomic):
    "Floating point (float or double)."
    default_val = 0.0
    allowed_len = [0, 4, 8]

    def set_hook(self, val):
        if isinstance(val, int):
            val = float(val)
        if not isinstance(val, float):
            raise ValueError("Attempt to set EBML float value to "
                             "non-float {!r}".format(val))
        return super().set_hook(val)

    def decode(self, data):
        if len(data) == 4:
            return unpack('>f', data)[0]
        elif len(data) == 8:
            return unpack('>d', data)[0]
        return 0.0

    def encode_value(self, val):
        # Always double, so no precision is lost.
        return pack('>d', val)


class ElementString(ElementAtomic):
    "ASCII string."
    codec = 'ascii'
    default_val = ''

    def set_hook(self, val):
        if not isinstance(val, str):
            raise ValueError("Attempt to set EBML string value to "
                             "non-string {!r}".format(val))
        return super().set_hook(val)

    def decode(self, data):
        return data.rstrip(b'\x00').decode(self.codec, errors='replace')

    def encode_value(self, val):
        return val.encode(self.codec, errors='replace')


class ElementUnicode(ElementString):
    "Unicode string."
    codec = 'utf-8'


class ElementDate(ElementSigned):
    """Date value.

    Matroska dates are encoded as 8-bit signed integers representing nanoseconds
    since the Matroska epoch.
    """
    allowed_len = [0, 8]
    epoch = datetime(2001, 1, 1)
    default_val = epoch

    def set_hook(self, val):
        if not isinstance(val, datetime):
            raise ValueError("Attempt to set EBML date value to "
                             "non-date {!r}".format(val))
        return val

    def decode(self, data):
        intval = super().decode(data)
        try:
            return self.epoch + timedelta(microseconds=(intval // 1000))
        except OverflowError:
            raise ValueError("date out of range: {}".format(intval))

    def encode_value(self, val):
        delta = val - self.epoch
        intval = (delta.days * 86400 + delta.seconds) * 1000000000 \
            + delta.microseconds * 1000
        return intval.to_bytes(8, byteorder='big', signed=True)

    def __str__(self):
        #pylint: disable=maybe-no-member
        return "{}: {}".format(Element.__str__(self),
                               self.value.strftime("%Y-%m-%d %H:%M:%S"))


class ElementID(ElementAtomic):
    "EBML ID, as stored in a SeekID element."
    default_val = 0
    allowed_len = [1, 2, 3, 4]

    def set_hook(self, val):
        if not isinstance(val, int) or id_length(val) > 4:
            raise ValueError("Attempt to set EBML ID value to "
                             "invalid number {!r}".format(val))
        return super().set_hook(val)

    @property
    def string_name(self):
        "Name of the element with this ID."
        return MATROSKA_SPECS[self.value].name

    def decode(self, data):
        return int.from_bytes(data, byteorder='big')

    def encode_value(self, val):
        return val.to_bytes(id_length(val), byteorder='big')

    def __str__(self):
        return "{}: [{}] ({})".format(Element.__str__(self),
                                      hex_bytes(self.encode_value(self.value)),
                                      self.string_name)


class ElementBinary(ElementAtomic):
    """Opaque binary payload, possibly large (e.g. an attached file).

    Payloads larger than defer_threshold are not read: self.value is then a
    Payload in the PAYLOAD_DEFERRED state, which remembers the stream, offset
    and size needed to load it later.  Smaller payloads are read at once into
    a loaded Payload.
    """
    defer_threshold = 1 << 16

    def __init__(self, header, name='Unknown'):
        super().__init__(header, name)
        self._value = Payload(b'')

    def set_hook(self, val):
        if isinstance(val, (bytes, bytearray)):
            val = Payload(bytes(val))
        if not isinstance(val, Payload):
            raise ValueError("Attempt to set binary value to {!r}"
                             .format(val))
        return val

    def read_data(self, stream, seekfirst=True):
        if self.size <= self.defer_threshold:
            super().read_data(stream, seekfirst)
            return
        if seekfirst:
            stream.seek(self.pos_data_absolute, SEEK_SET)
        self.value = Payload(stream=stream, offset=self.pos_data_absolute,
                             size=self.size)
        stream.seek(self.size, SEEK_CUR)
        self.mark_parsed()

    def decode(self, data):
        return Payload(data)

    def encode_value(self, val):
        return val.load()

    def __str__(self):
        return "{}: {!r}".format(Element.__str__(self), self.value)
