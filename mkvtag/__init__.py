"""
Package to read and rewrite the tags of a Matroska EBML file.

* Overview

An EBML file is a sequence of EBML Elements one after another.  An Element
consists of a two-part header encoding the Element ID and its data size,
followed by that many bytes of data.  The data size may also be "unknown", in
which case the Element extends until the first following Element that cannot
be one of its children.  The Matroska specification defines some number of
EBML IDs; the ones this package needs are listed in specdata.py.  Each defined
ID has a human-readable name, e.g. 'Segment'.  The semantics of the data
depends on the Element type:

 + Master: the data is a sequence of child Elements.
 + Unsigned, Signed: the data is an integer in big-endian form.
 + String, Unicode: the data is a string encoded in ascii or utf-8.
 + Float: the data is a 4-byte or 8-byte floating point number.
 + Date: the data is an 8-byte signed integer representing the number of
   nanoseconds since the Matroska epoch.
 + Binary: the data is opaque.

Metadata lives in two level-1 children of the Segment: Tags, a list of Tag
groups each holding a Targets element and any number of (possibly nested)
SimpleTag elements, and Attachments, a list of AttachedFile elements.

This package is organized in layers:

 + utility, header, specdata: EBML variable-size integers, Element headers
   and the table of known Element IDs.
 + element, atomic, container, parsed, data_elements: the Element Reader.  It
   builds a tree of Element instances from a seekable binary stream, skipping
   Clusters and deferring large binary payloads.
 + model: the Tag Tree Model (Tags, Tag, SimpleTag), built from the Tag
   Elements and independent of the stream.
 + attachments: the Attachment Store (Attachment, Payload, AttachmentStore).
 + facade: GenericTag, a format-agnostic view (title, performers, year,
   pictures, ...) over the model.
 + writer: TagWriter, which regenerates the Tags and Attachments Elements and
   copies everything else through unchanged.
 + file: MatroskaFile, the entry point tying the above together.

* Reading

The Container.read() method reads a list of children.  It calls
Container.read_element() for each child, which reads the header and creates
the appropriate Element instance, then calls Element.read_data() (or
read_summary() in summary mode).  Master Elements recursively read their
children, Atomic Elements decode and store their data, and Void and
Unsupported Elements skip over their data.

Reading never fails because of bad data.  Every Element goes through the read
states STATE_PENDING -> STATE_PARSED, or STATE_SKIPPED when its header or
value cannot be decoded, or STATE_TRUNCATED when its declared size runs past
the end of its parent or of the stream.  Each such problem is recorded as a
Defect on the File and logged; parsing carries on with the siblings.  A file
that is not Matroska at all simply produces an empty tag model.

* Writing

Only the Tags and Attachments Elements are ever regenerated.  The old ones
are overwritten with Void Elements of the same size, and the new ones are put
in whatever Void space fits them or appended at the end of the Segment.  The
Segment size and the SeekHead entries are patched, and every other byte is
copied from the source.  Positions in Matroska are relative to the start of
the Segment data, so Clusters and Cues stay valid.
"""

__all__ = ['EbmlException', 'Inconsistent', 'DecodeError', 'DetachedError',
           'MAX_DATA_SIZE']

################################################################################
# * Exception

class EbmlException(Exception):
    """Class for general EBML exceptions."""

class Inconsistent(EbmlException):
    """Raised when a structure cannot be written in its current state."""

class DecodeError(EbmlException):
    """Class for EBML decoding errors."""

class DetachedError(EbmlException):
    """Raised when modifying a Tag that does not belong to any Tags."""


################################################################################
# * Constants

# Maximum data size that EBML can encode
MAX_DATA_SIZE = (1<<56) - 2
