"""
Utility functions: EBML variable-size integers and formatting helpers.
"""

from io import BytesIO

from . import DecodeError

__all__ = ['hex_bytes', 'numbytes_var_int', 'max_var_int_in',
           'encode_var_int', 'decode_var_int', 'read_var_int',
           'encode_unknown_size', 'numbytes_uint']

def hex_bytes(bytestring):
    """Return a string representation of a byte string.

    Args:
     + bytestring: A bytes object.
    Returns:
       A string of the form 1A:2B:3D:4E
    """
    return ":".join("{:02X}".format(c) for c in bytestring)

def max_var_int_in(size):
    "Return the largest integer encodable in size bytes."
    return (1<<(size*7))-2

def numbytes_var_int(number):
    """Determine the minimum encoded size of an integer.

    Args:
     + number: A non-negative integer.
    Returns:
       The minimum number of bytes needed to encode 'number' as in
       encode_var_int(), or None if it can't be done in 8 bytes.
    """
    # All-ones is reserved, hence the +1.
    number = (number + 1) >> 7
    for size in range(1, 9):
        if number == 0:
            return size
        number >>= 7
    return None

def encode_var_int(number, numbytes=range(1, 9)):
    """Encode 'number' as an EBML variable-size integer.

    This will not encode the reserved value, i.e. the bitstring 0b0..01..1.
    The numbytes parameter must be an integer or an iterable of integers.

    Args:
     + number: An integer to encode.
     + numbytes: An iterable of increasing integers.  The number will be encoded
       in the smallest number of bytes in 'numbytes'.
    Returns:
       The encoded integer.
    Raises:
     + ValueError, if the largest value in 'numbytes' is not sufficient to
       encode 'number'.
    """
    if isinstance(numbytes, int):
        numbytes = [numbytes]
    size = 0
    for size in numbytes:
        if number <= max_var_int_in(size):
            return ((1 << (size*7)) | number).to_bytes(size, byteorder='big')
    raise ValueError("Can't store {} in {} bytes".format(number, size))

def encode_unknown_size(numbytes=8):
    "Encode the reserved 'unknown size' value in numbytes bytes."
    return ((1 << (numbytes*8 - numbytes + 1)) - 1).to_bytes(
        numbytes, byteorder='big')

def decode_var_int(bytestring, max_bytes=8):
    """Decode an EBML-encoded integer from a bytes object.

    See read_var_int().
    """
    return read_var_int(BytesIO(bytestring), max_bytes)

def read_var_int(stream, max_bytes=8):
    """Read EBML-encoded integer from a stream.

    Read an EBML-encoded variable-style integer with length descriptor from a
    binary stream.  Both the EBML ID and the size parts of an EBML header are
    encoded this way.

    Args:
     + stream: The binary stream to read.  The encoded integer will be read from
       the current position in the stream, and the stream will be advanced by
       the length of the encoded integer.
     + max_bytes: The largest number of bytes to read.
    Returns:
       A tuple (val, raw), where 'val' is the integer value and 'raw' is the
       byte string that was read.  Set 'val' to None if we read the reserved
       value, i.e. the bitstring 0b0..01..1.
    Raises:
     + EOFError, for an unexpected end of stream.
     + DecodeError, if the length descriptor is zero or is larger than
       max_bytes.
    """
    first_byte = stream.read(1)
    if len(first_byte) != 1:
        raise EOFError("End of stream reached.")
    first_char = first_byte[0]
    for size in range(max_bytes):
        marker = 1 << (7-size)
        if first_char & marker:
            rest = stream.read(size)
            if len(rest) != size:
                raise EOFError("End of stream reached.")
            val = ((first_char ^ marker) << (size*8)) \
                  + int.from_bytes(rest, byteorder='big')
            if val == (1 << 7*(size+1)) - 1:
                return (None, first_byte + rest)
            return (val, first_byte + rest)
    raise DecodeError("Invalid variable-size integer longer than {} bytes"
                      .format(max_bytes))

def numbytes_uint(number):
    "Return the number of bytes needed to store an unsigned integer (min 1)."
    return max([1, (number.bit_length() + 7) // 8])
