#pylint: disable=too-many-public-methods,too-many-ancestors
#pylint: disable=logging-format-interpolation
"""
Elements that exist as accessors for their data, using the Parsed property:
EBML, Segment, Seek, Info, TrackEntry, Video, Audio, AttachedFile, Tag, Targets,
SimpleTag.
"""

from collections import defaultdict

from .specdata import MATROSKA_SPECS
from .element import ElementMaster, STATE_SUMMARY, STATE_TRUNCATED
from .container import Container
from .parsed import Parsed, create_atomic
from .attachments import Payload

__all__ = ['ElementEBML', 'ElementSegment', 'ElementSeek', 'ElementInfo',
           'ElementTrackEntry', 'ElementVideo', 'ElementAudio',
           'ElementAttachedFile', 'ElementTag', 'ElementTargets',
           'ElementSimpleTag', 'TRACK_TYPES']

import logging  #pylint: disable=wrong-import-order,wrong-import-position
LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

TRACK_TYPES = {1: 'video', 2: 'audio', 3: 'complex', 0x10: 'logo',
               0x11: 'subtitle', 0x12: 'buttons', 0x20: 'control'}


class ElementEBML(ElementMaster):
    """Class to extract metadata from an EBML Element.

    Attributes:
     + version: The value of the EBMLVersion element.
     + read_version: The value of the EBMLReadVersion element.
     + max_id_length: The value of the EBMLMaxIDLength element.
     + max_size_length: The value of the EBMLMaxSizeLength element.
     + doc_type: The value of the DocType element.
     + doc_type_version: The value of the DocTypeVersion element.
     + doc_type_read_version: The value of the DocTypeReadVersion element.
    """

    version = Parsed('EBMLVersion', 'value', 'value', create_atomic())
    read_version = Parsed('EBMLReadVersion', 'value', 'value', create_atomic())
    max_id_length = Parsed('EBMLMaxIDLength', 'value', 'value', create_atomic())
    max_size_length = Parsed('EBMLMaxSizeLength', 'value', 'value',
                             create_atomic())
    doc_type = Parsed('DocType', 'value', 'value', create_atomic())
    doc_type_version = Parsed('DocTypeVersion', 'value', 'value',
                              create_atomic())
    doc_type_read_version = Parsed('DocTypeReadVersion', 'value', 'value',
                                   create_atomic())

    def __str__(self):
        return "{}: V{}/{} ID:{} SZ:{} {!r} V{}/{}" \
            .format(self.__class__.__name__,
                    self.version, self.read_version,
                    self.max_id_length, self.max_size_length,
                    self.doc_type, self.doc_type_version,
                    self.doc_type_read_version)

    def check_read_handled(self):
        "Check if we support reading the file."
        return self.read_version <= 1 and self.max_id_length <= 4 and \
           self.max_size_length <= 8 and \
           self.doc_type.lower() in ('matroska', 'webm')


class ElementSegment(ElementMaster):
    """Class to extract metadata from a Segment.

    Elements and element lists:
     + seek_heads: Iterator over SeekHead elements.
     + seek_entries: Iterator over Seek elements.
     + seek_entries_byid: Dict whose keys are EBML IDs and whose values are
       lists of relative positions where that child may be found.
     + tracks: Iterator over TrackEntry elements.
     + attached_files: Iterator over AttachedFile elements.
     + tags: Iterator over Tag elements, i.e. tag groups.

    Extracted from Info elements:
     + uid: SegmentUID, a 128-bit bytes object; None if not defined.
     + timecode_scale: TimecodeScale, the timestamp scale in nanoseconds.
     + duration: Segment duration in seconds (float); None if not defined.
     + title: Title, the global title of the segment; None if not defined.
     + muxing_app, writing_app: None if not defined.

    Other:
     + resync_window: Number of bytes scanned for the next level-1 element
       after a header that could not be decoded.
    """

    resync_window = 1 << 20

    # Properties

    @property
    def seek_heads(self):
        "Iterate over SeekHead elements."
        yield from self.children_named('SeekHead')

    @property
    def seek_entries(self):
        "Iterate over Seek elements."
        for seek_head in self.seek_heads:
            yield from seek_head.children_named('Seek')

    @property
    def seek_entries_byid(self):
        "Get a dict whose keys are EBML IDs and whose values are positions."
        ret = defaultdict(list)
        for seek in self.seek_entries:
            ret[seek.seek_id].append(seek.seek_pos)
        return ret

    @property
    def tracks(self):
        "Iterate over TrackEntry elements."
        for tracks in self.children_named('Tracks'):
            yield from tracks.children_named('TrackEntry')

    @property
    def attached_files(self):
        "Iterate over AttachedFile elements."
        for attachments in self.children_named('Attachments'):
            yield from attachments.children_named('AttachedFile')

    @property
    def tags(self):
        "Iterate over Tag elements."
        for tags in self.children_named('Tags'):
            yield from tags.children_named('Tag')

    @property
    def is_video(self):
        "True if there is a video track."
        return any(track.track_type == 1 for track in self.tracks)

    def duration_getter(self, child):
        "Get child.duration, scaling to seconds."
        if child.duration is None:
            return None
        return child.duration * self.timecode_scale / 1e9

    # From Info elements
    info = Parsed('Info', '')
    uid = Parsed('Info', 'segment_uid', skip=None)
    timecode_scale = Parsed('Info', 'timecode_scale', default=1000000)
    duration = Parsed('Info', duration_getter, skip=None)
    title = Parsed('Info', 'title', skip=None)
    muxing_app = Parsed('Info', 'muxing_app', skip=None)
    writing_app = Parsed('Info', 'writing_app', skip=None)

    # Reading

    @property
    def level_one_ids(self):
        "EBML IDs of the elements that may be children of a Segment."
        return set(spec.ebml_id for spec in MATROSKA_SPECS.level_ones())

    def read_summary(self, stream, seekfirst=True):
        """Read all level-1 children in summary mode.

        Clusters, Cues and Chapters are skipped over by size.
        """
        end = Container.read(self, stream, 0, self.size, summary=True,
                             seekfirst=seekfirst)
        if self.size is None:
            self.set_extent(end)
        if self.read_state != STATE_TRUNCATED:
            self.read_state = STATE_SUMMARY

    def recover(self, stream, cur_pos, end):
        "Scan for the next level-1 element."
        return self.resync(stream, cur_pos + 1, end, self.level_one_ids,
                           self.resync_window)

    def parse_SeekHead(self, child, _): #pylint: disable=invalid-name
        "Log the seek entries."
        for seek in child.children_named('Seek'):
            LOG.debug("Seek entry {} at {}".format(seek.seek_id_name,
                                                   seek.seek_pos))

    def parse_Tags(self, child, _): #pylint: disable=invalid-name
        "Log where the tags are."
        LOG.debug("Tags at {}: {} Tag element(s)"
                  .format(child.pos_absolute,
                          len(list(child.children_named('Tag')))))

    def parse_Attachments(self, child, _): #pylint: disable=invalid-name
        "Log where the attachments are."
        LOG.debug("Attachments at {}: {} file(s)"
                  .format(child.pos_absolute,
                          len(list(child.children_named('AttachedFile')))))


class ElementSeek(ElementMaster):
    """Class for a Seek element: the position of a level-1 element.

    Attributes:
     + seek_id: The EBML ID of the element being indexed.
     + seek_id_name: The name of that element.
     + seek_pos: Its position relative to the Segment data.
    """

    @classmethod
    def new_index(cls, ebml_id, seek_pos):
        "Create a Seek element pointing to an EBML ID at seek_pos."
        ret = cls.new('Seek')
        ret.seek_id = ebml_id
        ret.seek_pos = seek_pos
        return ret

    seek_id = Parsed('SeekID', 'value', 'value', create_atomic())
    seek_id_name = Parsed('SeekID', 'string_name', default="NOT DEFINED")
    seek_pos = Parsed('SeekPosition', 'value', 'value', create_atomic())

    def __str__(self):
        return "{}: {} @{}".format(self.__class__.__name__,
                                   self.seek_id_name, self.seek_pos)


class ElementInfo(ElementMaster):
    "Segment information."

    segment_uid = Parsed('SegmentUID', 'value', 'value', create_atomic())
    timecode_scale = Parsed('TimecodeScale', 'value', 'value', create_atomic())
    duration = Parsed('Duration', 'value', 'value', create_atomic())
    title = Parsed('Title', 'value', 'value', create_atomic())
    muxing_app = Parsed('MuxingApp', 'value', 'value', create_atomic())
    writing_app = Parsed('WritingApp', 'value', 'value', create_atomic())


class ElementTrackEntry(ElementMaster):
    """Class for a TrackEntry element.

    Attributes:
     + track_type: TrackType integer (1 is video, 2 is audio).
     + track_type_name: TrackType as a string.
     + codec_id, codec_name, track_name, track_language: Strings.
     + track_number, track_uid: Integers.
     + video, audio: The Video or Audio child elements, or None.
    """

    track_type = Parsed('TrackType', 'value', 'value', create_atomic())
    track_name = Parsed('Name', 'value', 'value', create_atomic())
    track_language = Parsed('Language', 'value', 'value', create_atomic())
    codec_id = Parsed('CodecID', 'value', 'value', create_atomic())
    codec_name = Parsed('CodecName', 'value', 'value', create_atomic())
    track_number = Parsed('TrackNumber', 'value', 'value', create_atomic())
    track_uid = Parsed('TrackUID', 'value', 'value', create_atomic())
    flag_enabled = Parsed('FlagEnabled', 'value', 'value', create_atomic())
    flag_default = Parsed('FlagDefault', 'value', 'value', create_atomic())
    video = Parsed('Video', '')
    audio = Parsed('Audio', '')

    @property
    def track_type_name(self):
        "The track type as a string."
        return TRACK_TYPES.get(self.track_type, 'unknown')

    def __str__(self):
        return "{}: #{} {} {!r} ({})".format(self.__class__.__name__,
                                             self.track_number,
                                             self.track_type_name,
                                             self.track_name, self.codec_id)


class ElementVideo(ElementMaster):
    """Video track settings.

    Attributes:
     + pixel_width, pixel_height: Size of the encoded frames.
     + display_width, display_height: Default to the pixel sizes.
    """

    pixel_width = Parsed('PixelWidth', 'value', 'value', create_atomic())
    pixel_height = Parsed('PixelHeight', 'value', 'value', create_atomic())
    display_width = Parsed('DisplayWidth', 'value', 'value', create_atomic(),
                           default=lambda self: self.pixel_width)
    display_height = Parsed('DisplayHeight', 'value', 'value', create_atomic(),
                            default=lambda self: self.pixel_height)

    def __str__(self):
        return "{}: {}x{}".format(self.__class__.__name__,
                                  self.pixel_width, self.pixel_height)


class ElementAudio(ElementMaster):
    """Audio track settings.

    Attributes:
     + channels: Number of channels.
     + bit_depth: Bits per sample, or None.
     + sampling_frequency: In Hz.
     + output_sampling_frequency: In Hz; defaults to sampling_frequency.
    """

    channels = Parsed('Channels', 'value', 'value', create_atomic())
    bit_depth = Parsed('BitDepth', 'value', 'value', create_atomic())
    sampling_frequency = Parsed('SamplingFrequency', 'value', 'value',
                                create_atomic())
    output_sampling_frequency \
        = Parsed('OutputSamplingFrequency', 'value', 'value', create_atomic(),
                 default=lambda self: self.sampling_frequency)

    def __str__(self):
        return "{}: channels={} sampling={}k" \
            .format(self.__class__.__name__, self.channels,
                    int(self.sampling_frequency/1000))


class ElementAttachedFile(ElementMaster):
    """Class for an AttachedFile element.

    Attributes:
     + file_name: The value of the FileName element, a string.
     + uid: The value of the FileUID element, an integer.
     + description: The value of the FileDescription element, or ''.
     + mime_type: The value of the FileMimeType element, a string.
     + payload: The FileData element's Payload (possibly not loaded).
     + file_size: The size of the payload.
    """

    @classmethod
    def from_attachment(cls, attachment):
        "Create a new AttachedFile element from an Attachment."
        ret = cls.new('AttachedFile')
        if attachment.description:
            ret.description = attachment.description
        ret.file_name = attachment.filename
        ret.mime_type = attachment.mime_type
        ret.payload = attachment.payload
        ret.uid = attachment.uid
        return ret

    file_name = Parsed('FileName', 'value', 'value', create_atomic())
    uid = Parsed('FileUID', 'value', 'value', create_atomic())
    description = Parsed('FileDescription', 'value', 'value', create_atomic(),
                         default='')
    mime_type = Parsed('FileMimeType', 'value', 'value', create_atomic())
    payload = Parsed('FileData', 'value', 'value', create_atomic(),
                     default=lambda self: Payload(b''))
    file_size = Parsed('FileData', 'size', default=0)

    def __str__(self):
        ret = "{}: {!r} ({}), {} bytes" \
            .format(self.__class__.__name__, self.file_name,
                    self.mime_type, self.file_size)
        if self.description:
            ret += ": " + repr(self.description)
        return ret


class ElementTag(ElementMaster):
    """Class for a Tag element, i.e. a tag group.

    Attributes:
     + targets: The Targets element, or None.
     + target_type_value: The TargetTypeValue child of the Targets element.
     + target_type: The TargetType child of the Targets element.
     + simple_tags: Iterator over SimpleTag children.
    """

    @classmethod
    def new_with_value(cls, target_type_value, target_type=None, parent=None):
        "Create a new tag group."
        ret = cls.new('Tag', parent)
        targets = ElementTargets.new('Targets', ret)
        targets.target_type_value = target_type_value
        if target_type:
            targets.target_type = target_type
        return ret

    @property
    def simple_tags(self):
        "Iterate over SimpleTag elements."
        yield from self.children_named('SimpleTag')

    def _uids(name):
        #pylint: disable=no-self-argument
        def getter(self):
            "List of UIDs in the Targets element."
            if self.targets is None:
                return []
            return [child.value for child in self.targets.children_named(name)]
        return property(getter)

    targets = Parsed('Targets', '')
    target_type_value = Parsed('Targets', 'target_type_value', default=50)
    target_type = Parsed('Targets', 'target_type')
    track_uids = _uids('TagTrackUID')
    edition_uids = _uids('TagEditionUID')
    chapter_uids = _uids('TagChapterUID')
    attachment_uids = _uids('TagAttachmentUID')
    del _uids

    def __str__(self):
        return "{}: {} ({}), {} tags" \
            .format(self.__class__.__name__, self.target_type,
                    self.target_type_value, len(list(self.simple_tags)))


class ElementTargets(ElementMaster):
    """Class for a Targets element.

    Attributes:
     + target_type_value: The value of the TargetTypeValue element.
     + target_type: The value of the TargetType element.
    """
    target_type_value = Parsed('TargetTypeValue', 'value', 'value',
                               create_atomic(), default=50)
    target_type = Parsed('TargetType', 'value', 'value', create_atomic())


class ElementSimpleTag(ElementMaster):
    """Class for a SimpleTag element.

    Attributes:
     + tag_name: The value of the TagName element.
     + language: The value of the TagLanguage element.
     + default: The value of the TagDefault element.
     + string_val: The value of the TagString element.
     + binary_val: The value of the TagBinary element.
     + sub_tags: Iterate over SimpleTag children.
    """

    default_lang = 'und'

    @classmethod
    def new_with_value(cls, tag_name, string_val, parent=None, *, lang=None):
        "Create a new SimpleTag with a name and a value."
        ret = cls.new('SimpleTag', parent)
        ret.tag_name = tag_name
        ret.language = cls.default_lang if lang is None else lang
        if string_val is not None:
            ret.string_val = string_val
        return ret

    @property
    def sub_tags(self):
        "Iterate over SimpleTag elements."
        yield from self.children_named('SimpleTag')

    tag_name = Parsed('TagName', 'value', 'value', create_atomic())
    language = Parsed('TagLanguage', 'value', 'value', create_atomic(),
                      default='und')
    default = Parsed('TagDefault', 'value', 'value', create_atomic(),
                     default=True)
    string_val = Parsed('TagString', 'value', 'value', create_atomic())
    binary_val = Parsed('TagBinary', 'value', 'value', create_atomic())

    def __str__(self):
        return "{} lang={} def={!r}: {!r} => {!r}" \
            .format(self.__class__.__name__, self.language,
                    bool(self.default), self.tag_name, self.string_val)
