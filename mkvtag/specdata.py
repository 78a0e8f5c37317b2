"""
Matroska element specifications.

The table below is the subset of Matroska's specdata.xml needed to find, read
and rewrite tags and attachments, and to summarize the tracks.  Elements not
listed here are read as ElementUnsupported and skipped by size.
"""

from collections.abc import Mapping

__all__ = ['ElementSpec', 'SpecDict', 'MATROSKA_SPECS', 'ID_VOID',
           'ID_SEGMENT', 'ID_TAGS', 'ID_ATTACHMENTS', 'ID_SEEK_HEAD',
           'ID_CLUSTER']

class ElementSpec:
    """Class representing the specification of an EBML element.

    This class encodes the defining data of an EBML element as given by the
    Matroska specification.  It serves mainly as an attribute dictionary for
    the element properties, but it also keeps track of parent-child
    relationships.

    Note that many different specs will correspond to the same Element class.

    Attributes that are always defined:
     + ebml_id: The EBML ID of this element, an integer (encoded form).
     + name: The name of this element, a string.
     + cls: The Element subclass to instantiate in self.__call__().
     + parent: The parent ElementSpec instance.  For level-zero elements this
       is None, and for global elements it is "*".
     + multiple: Whether this element may appear multiple times.
     + children: ElementSpec instances whose parent is this one.

    Attributes that are sometimes defined:
     + default: Default value.
     + recursive: Whether the element can be a child of itself.
    """

    def __init__(self, ebml_id, name, cls, parent, multiple, **kwargs):
        #pylint: disable=too-many-arguments
        self.ebml_id = ebml_id
        self.name = name
        self.cls = cls
        if parent is None or parent == "*":
            self.parent = parent
        else:
            self.parent = MATROSKA_SPECS[parent]
            self.parent.children.append(self)
        self.multiple = multiple
        for key, val in kwargs.items():
            setattr(self, key, val)
        self.children = []

    def __eq__(self, other):
        return isinstance(other, ElementSpec) and self.ebml_id == other.ebml_id
    def __ne__(self, other):
        return not self == other

    def __hash__(self):
        return self.ebml_id

    def __repr__(self):
        return "<{} 0x{:X} {!r}>".format(self.__class__.__name__,
                                          self.ebml_id, self.name)

    def __call__(self, header):
        """Create a new Element instance for this spec.

        Args:
         + header: as in Element.__init__().
        """
        return self.cls(header, name=self.name)

    @property
    def level(self):
        "Nesting level: 0 for EBML and Segment, None for global elements."
        if self.parent is None:
            return 0
        if self.parent == "*":
            return None
        parent_level = self.parent.level
        return None if parent_level is None else parent_level + 1

    def is_child(self, spec):
        "Decide if this element is allowed to be contained in spec."
        if spec is None:
            return self.parent is None or self.parent == "*"
        if self.parent == spec or self.parent == "*":
            return True
        return getattr(self, 'recursive', False) and spec == self


class SpecDict(Mapping):
    """Dictionary for storing ElementSpec instances.

    This dictionary does not support __setitem__(); instead ElementSpec
    instances must be added using insert().  They are stored under both their
    name and ID.  Looking up an unknown integer ID returns a new global
    'Unknown' spec.

    The specs are loaded on demand to prevent circular import dependencies.
    """
    def __init__(self):
        self._dict = {}
        self._initialized = False

    def __getitem__(self, key):
        self.delayed_init()
        try:
            return self._dict[key]
        except KeyError:
            if isinstance(key, int):
                from .element import ElementUnsupported
                return ElementSpec(key, 'Unknown', ElementUnsupported, "*",
                                   True)
            raise

    def __len__(self):
        self.delayed_init()
        return len(self._dict)
    def __iter__(self):
        self.delayed_init()
        return iter(self._dict)
    def __contains__(self, item):
        self.delayed_init()
        return self._dict.__contains__(item)

    def insert(self, spec):
        """Store spec in self under its name and ebml_id.

        Raises:
         + ValueError, if spec is not an instance of ElementSpec.
        """
        if not isinstance(spec, ElementSpec):
            raise ValueError("Tried to insert() a non-ElementSpec instance {!r}"
                             .format(spec))
        self._dict[spec.ebml_id] = spec
        self._dict[spec.name] = spec

    def level_ones(self):
        "Iterate over the children of the Segment spec."
        return iter(self['Segment'].children)

    def delayed_init(self):
        "Initialize the specs."
        if self._initialized:
            return
        self._initialized = True

        from . import element, atomic, data_elements
        modules = (element, atomic, data_elements)
        def find_cls(cls_name):
            "Look up an Element class by name."
            for module in modules:
                if hasattr(module, cls_name):
                    return getattr(module, cls_name)
            raise KeyError(cls_name)

        for row in _SPEC_TABLE:
            ebml_id, name, cls_name, parent, multiple = row[:5]
            extra = row[5] if len(row) > 5 else {}
            self.insert(ElementSpec(ebml_id, name, find_cls(cls_name), parent,
                                    multiple, **extra))


# (ebml_id, name, class name, parent, multiple[, extra attributes])
_SPEC_TABLE = [
    # Global
    (0xEC, 'Void', 'ElementVoid', "*", True),
    (0xBF, 'CRC-32', 'ElementUnsupported', "*", False),
    # EBML header
    (0x1A45DFA3, 'EBML', 'ElementEBML', None, True),
    (0x4286, 'EBMLVersion', 'ElementUnsigned', 'EBML', False,
     dict(default=1)),
    (0x42F7, 'EBMLReadVersion', 'ElementUnsigned', 'EBML', False,
     dict(default=1)),
    (0x42F2, 'EBMLMaxIDLength', 'ElementUnsigned', 'EBML', False,
     dict(default=4)),
    (0x42F3, 'EBMLMaxSizeLength', 'ElementUnsigned', 'EBML', False,
     dict(default=8)),
    (0x4282, 'DocType', 'ElementString', 'EBML', False,
     dict(default='matroska')),
    (0x4287, 'DocTypeVersion', 'ElementUnsigned', 'EBML', False,
     dict(default=1)),
    (0x4285, 'DocTypeReadVersion', 'ElementUnsigned', 'EBML', False,
     dict(default=1)),
    # Segment
    (0x18538067, 'Segment', 'ElementSegment', None, True),
    (0x114D9B74, 'SeekHead', 'ElementMaster', 'Segment', True),
    (0x4DBB, 'Seek', 'ElementSeek', 'SeekHead', True),
    (0x53AB, 'SeekID', 'ElementID', 'Seek', False),
    (0x53AC, 'SeekPosition', 'ElementUnsigned', 'Seek', False),
    (0x1549A966, 'Info', 'ElementInfo', 'Segment', True),
    (0x73A4, 'SegmentUID', 'ElementRaw', 'Info', False),
    (0x2AD7B1, 'TimecodeScale', 'ElementUnsigned', 'Info', False,
     dict(default=1000000)),
    (0x4489, 'Duration', 'ElementFloat', 'Info', False),
    (0x4461, 'DateUTC', 'ElementDate', 'Info', False),
    (0x7BA9, 'Title', 'ElementUnicode', 'Info', False),
    (0x4D80, 'MuxingApp', 'ElementUnicode', 'Info', False),
    (0x5741, 'WritingApp', 'ElementUnicode', 'Info', False),
    (0x1654AE6B, 'Tracks', 'ElementMaster', 'Segment', True),
    (0xAE, 'TrackEntry', 'ElementTrackEntry', 'Tracks', True),
    (0xD7, 'TrackNumber', 'ElementUnsigned', 'TrackEntry', False),
    (0x73C5, 'TrackUID', 'ElementUnsigned', 'TrackEntry', False),
    (0x83, 'TrackType', 'ElementUnsigned', 'TrackEntry', False),
    (0xB9, 'FlagEnabled', 'ElementBoolean', 'TrackEntry', False,
     dict(default=True)),
    (0x88, 'FlagDefault', 'ElementBoolean', 'TrackEntry', False,
     dict(default=True)),
    (0x55AA, 'FlagForced', 'ElementBoolean', 'TrackEntry', False,
     dict(default=False)),
    (0x536E, 'Name', 'ElementUnicode', 'TrackEntry', False),
    (0x22B59C, 'Language', 'ElementString', 'TrackEntry', False,
     dict(default='eng')),
    (0x86, 'CodecID', 'ElementString', 'TrackEntry', False),
    (0x63A2, 'CodecPrivate', 'ElementRaw', 'TrackEntry', False),
    (0x258688, 'CodecName', 'ElementUnicode', 'TrackEntry', False),
    (0x23E383, 'DefaultDuration', 'ElementUnsigned', 'TrackEntry', False),
    (0xE0, 'Video', 'ElementVideo', 'TrackEntry', False),
    (0xB0, 'PixelWidth', 'ElementUnsigned', 'Video', False),
    (0xBA, 'PixelHeight', 'ElementUnsigned', 'Video', False),
    (0x54B0, 'DisplayWidth', 'ElementUnsigned', 'Video', False),
    (0x54BA, 'DisplayHeight', 'ElementUnsigned', 'Video', False),
    (0xE1, 'Audio', 'ElementAudio', 'TrackEntry', False),
    (0xB5, 'SamplingFrequency', 'ElementFloat', 'Audio', False,
     dict(default=8000.0)),
    (0x78B5, 'OutputSamplingFrequency', 'ElementFloat', 'Audio', False),
    (0x9F, 'Channels', 'ElementUnsigned', 'Audio', False, dict(default=1)),
    (0x6264, 'BitDepth', 'ElementUnsigned', 'Audio', False),
    (0x1F43B675, 'Cluster', 'ElementMasterDefer', 'Segment', True),
    (0xE7, 'Timecode', 'ElementUnsigned', 'Cluster', False),
    (0xA3, 'SimpleBlock', 'ElementUnsupported', 'Cluster', True),
    (0xA0, 'BlockGroup', 'ElementMaster', 'Cluster', True),
    (0xA1, 'Block', 'ElementUnsupported', 'BlockGroup', False),
    (0x1C53BB6B, 'Cues', 'ElementMasterDefer', 'Segment', False),
    (0xBB, 'CuePoint', 'ElementUnsupported', 'Cues', True),
    (0x1043A770, 'Chapters', 'ElementMasterDefer', 'Segment', False),
    (0x45B9, 'EditionEntry', 'ElementUnsupported', 'Chapters', True),
    # Attachments
    (0x1941A469, 'Attachments', 'ElementMaster', 'Segment', False),
    (0x61A7, 'AttachedFile', 'ElementAttachedFile', 'Attachments', True),
    (0x467E, 'FileDescription', 'ElementUnicode', 'AttachedFile', False),
    (0x466E, 'FileName', 'ElementUnicode', 'AttachedFile', False),
    (0x4660, 'FileMimeType', 'ElementString', 'AttachedFile', False),
    (0x465C, 'FileData', 'ElementBinary', 'AttachedFile', False),
    (0x46AE, 'FileUID', 'ElementUnsigned', 'AttachedFile', False),
    # Tags
    (0x1254C367, 'Tags', 'ElementMaster', 'Segment', True),
    (0x7373, 'Tag', 'ElementTag', 'Tags', True),
    (0x63C0, 'Targets', 'ElementTargets', 'Tag', False),
    (0x68CA, 'TargetTypeValue', 'ElementUnsigned', 'Targets', False,
     dict(default=50)),
    (0x63CA, 'TargetType', 'ElementString', 'Targets', False),
    (0x63C5, 'TagTrackUID', 'ElementUnsigned', 'Targets', True),
    (0x63C9, 'TagEditionUID', 'ElementUnsigned', 'Targets', True),
    (0x63C4, 'TagChapterUID', 'ElementUnsigned', 'Targets', True),
    (0x63C6, 'TagAttachmentUID', 'ElementUnsigned', 'Targets', True),
    (0x67C8, 'SimpleTag', 'ElementSimpleTag', 'Tag', True,
     dict(recursive=True)),
    (0x45A3, 'TagName', 'ElementUnicode', 'SimpleTag', False),
    (0x447A, 'TagLanguage', 'ElementString', 'SimpleTag', False,
     dict(default='und')),
    (0x447B, 'TagLanguageIETF', 'ElementString', 'SimpleTag', False),
    (0x4484, 'TagDefault', 'ElementBoolean', 'SimpleTag', False,
     dict(default=True)),
    (0x4487, 'TagString', 'ElementUnicode', 'SimpleTag', False),
    (0x4485, 'TagBinary', 'ElementRaw', 'SimpleTag', False),
]

# This dictionary contains the elements that the parser recognizes.  The values
# are ElementSpec instances and the keys are the element IDs and names.
MATROSKA_SPECS = SpecDict()

ID_VOID = 0xEC
ID_SEGMENT = 0x18538067
ID_SEEK_HEAD = 0x114D9B74
ID_CLUSTER = 0x1F43B675
ID_ATTACHMENTS = 0x1941A469
ID_TAGS = 0x1254C367
