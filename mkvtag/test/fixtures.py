"""
Build Matroska files in memory from raw EBML bytes.

The builders here don't use the element classes, so the reader
is tested against independently encoded data.
"""

from struct import pack

from mkvtag.utility import encode_var_int, encode_unknown_size

__all__ = ['elt', 'uint', 'string', 'float64', 'simple_tag', 'tag',
           'attached_file', 'ebml_header', 'void', 'segment', 'seek_head',
           'build_mkv', 'turning_lime', 'COVER_DATA', 'IDS']

IDS = {
    'EBML': 0x1A45DFA3, 'DocType': 0x4282, 'DocTypeVersion': 0x4287,
    'DocTypeReadVersion': 0x4285,
    'Segment': 0x18538067, 'SeekHead': 0x114D9B74, 'Seek': 0x4DBB,
    'SeekID': 0x53AB, 'SeekPosition': 0x53AC,
    'Info': 0x1549A966, 'TimecodeScale': 0x2AD7B1, 'Duration': 0x4489,
    'Title': 0x7BA9, 'MuxingApp': 0x4D80, 'WritingApp': 0x5741,
    'DateUTC': 0x4461, 'SegmentUID': 0x73A4,
    'Tracks': 0x1654AE6B, 'TrackEntry': 0xAE, 'TrackNumber': 0xD7,
    'TrackUID': 0x73C5, 'TrackType': 0x83, 'CodecID': 0x86,
    'Video': 0xE0, 'PixelWidth': 0xB0, 'PixelHeight': 0xBA,
    'Audio': 0xE1, 'SamplingFrequency': 0xB5, 'Channels': 0x9F,
    'BitDepth': 0x6264,
    'Cluster': 0x1F43B675, 'Timecode': 0xE7, 'SimpleBlock': 0xA3,
    'Cues': 0x1C53BB6B, 'CuePoint': 0xBB,
    'Attachments': 0x1941A469, 'AttachedFile': 0x61A7,
    'FileDescription': 0x467E, 'FileName': 0x466E, 'FileMimeType': 0x4660,
    'FileData': 0x465C, 'FileUID': 0x46AE,
    'Tags': 0x1254C367, 'Tag': 0x7373, 'Targets': 0x63C0,
    'TargetTypeValue': 0x68CA, 'TargetType': 0x63CA, 'TagTrackUID': 0x63C5,
    'SimpleTag': 0x67C8, 'TagName': 0x45A3, 'TagLanguage': 0x447A,
    'TagDefault': 0x4484, 'TagString': 0x4487, 'TagBinary': 0x4485,
    'Void': 0xEC,
}

def elt(name, *parts, size=None, unknown=False):
    """Encode an element from its name (or ID) and data parts.

    Args:
     + size: Declared size to write instead of the real one.
     + unknown: Write the unknown size marker.
    """
    ebml_id = IDS[name] if isinstance(name, str) else name
    data = b''.join(parts)
    raw_id = ebml_id.to_bytes((ebml_id.bit_length() + 7) // 8, 'big')
    if unknown:
        return raw_id + encode_unknown_size(8) + data
    return raw_id + encode_var_int(len(data) if size is None else size) + data

def uint(name, val, width=None):
    "Unsigned integer element."
    width = width or max([1, (val.bit_length() + 7) // 8])
    return elt(name, val.to_bytes(width, 'big'))

def string(name, val):
    "String element (utf-8)."
    return elt(name, val.encode('utf-8'))

def float64(name, val):
    "Double precision float element."
    return elt(name, pack('>d', val))

def simple_tag(name, value=None, lang=None, children=()):
    "SimpleTag element."
    parts = [string('TagName', name)]
    if lang is not None:
        parts.append(string('TagLanguage', lang))
    if value is not None:
        parts.append(string('TagString', value))
    parts.extend(children)
    return elt('SimpleTag', *parts)

def tag(target_type_value, *simple_tags, track_uids=()):
    "Tag element."
    targets = [uint('TargetTypeValue', target_type_value)]
    targets.extend(uint('TagTrackUID', uid) for uid in track_uids)
    return elt('Tag', elt('Targets', *targets), *simple_tags)

def attached_file(name, mime_type, data, uid, description=None):
    "AttachedFile element."
    parts = []
    if description is not None:
        parts.append(string('FileDescription', description))
    parts += [string('FileName', name), string('FileMimeType', mime_type),
              elt('FileData', data), uint('FileUID', uid)]
    return elt('AttachedFile', *parts)

def ebml_header(doc_type='matroska'):
    "EBML header element."
    return elt('EBML', string('DocType', doc_type),
               uint('DocTypeVersion', 4), uint('DocTypeReadVersion', 2))

def void(total_size):
    "Void element of total_size bytes (at least 2)."
    for width in range(1, 9):
        data_size = total_size - 1 - width
        if data_size < (1 << (7 * width)) - 1:
            return b'\xec' + encode_var_int(data_size, width) \
                + b'\x00' * data_size
    raise ValueError("Void too large")

def segment(*children, unknown=False):
    "Segment element."
    return elt('Segment', *children, unknown=unknown)

def seek_head(entries):
    "SeekHead with (name, position) entries; positions use 4 bytes."
    return elt('SeekHead', *[
        elt('Seek', elt('SeekID', IDS[name].to_bytes(
            (IDS[name].bit_length() + 7) // 8, 'big')),
            uint('SeekPosition', pos, 4))
        for name, pos in entries])

def build_mkv(children, indexed=('Info', 'Tracks', 'Tags', 'Attachments'),
              unknown=False):
    """Build a file with a SeekHead indexing the named level-1 children.

    Args:
     + children: List of (name, encoded element) pairs, in order.
     + indexed: Names to put in the SeekHead (if present).
    """
    entries = [(name, 0) for name, _ in children if name in indexed]
    head_size = len(seek_head(entries)) if entries else 0
    pos = head_size
    entries = []
    for name, data in children:
        if name in indexed:
            entries.append((name, pos))
        pos += len(data)
    body = seek_head(entries) if entries else b''
    body += b''.join(data for _, data in children)
    return ebml_header() + segment(body, unknown=unknown)

# A PNG signature followed by zero padding, 17307 bytes in all.
COVER_DATA = b'\x89PNG\r\n\x1a\n' + b'\x00' * (17307 - 8)

CLUSTER = elt('Cluster', uint('Timecode', 0),
              elt('SimpleBlock', bytes(range(256)) * 4))

def turning_lime(with_tags=True, with_attachments=True, void_size=0):
    """The 'Turning Lime' test video: a video and an audio track, tags for
    the whole file and one front cover.

    Args:
     + void_size: Size of a Void element to put after the Tracks.
    """
    info = elt('Info', uint('TimecodeScale', 1000000),
               float64('Duration', 1120.0), string('MuxingApp', 'fixtures'),
               string('WritingApp', 'fixtures'))
    tracks = elt('Tracks',
                 elt('TrackEntry', uint('TrackNumber', 1),
                     uint('TrackUID', 1111), uint('TrackType', 1),
                     string('CodecID', 'V_MPEG4/ISO/AVC'),
                     elt('Video', uint('PixelWidth', 320),
                         uint('PixelHeight', 240))),
                 elt('TrackEntry', uint('TrackNumber', 2),
                     uint('TrackUID', 2222), uint('TrackType', 2),
                     string('CodecID', 'A_AAC'),
                     elt('Audio', float64('SamplingFrequency', 48000.0),
                         uint('Channels', 2))))
    tags = elt('Tags', tag(
        50,
        simple_tag('TITLE', 'Turning Lime'),
        simple_tag('DATE_RELEASED', '2017'),
        simple_tag('GENRE', 'Test'),
        simple_tag('ARTIST', 'Lime'),
        simple_tag('COMPOSER', 'Starwer'),
        simple_tag('CONDUCTOR', 'Starwer'),
        simple_tag('COPYRIGHT', 'Starwer 2017'),
        simple_tag('COMMENT', 'no comments'),
        simple_tag('SUMMARY',
                   'This is a test Video showing a lime moving on a table')))
    attachments = elt('Attachments', attached_file(
        'cover.png', 'image/png', COVER_DATA, 0x1234567890))
    children = [('Info', info), ('Tracks', tracks)]
    if void_size:
        children.append(('Void', void(void_size)))
    children.append(('Cluster', CLUSTER))
    if with_tags:
        children.append(('Tags', tags))
    if with_attachments:
        children.append(('Attachments', attachments))
    children.append(('Cues', elt('Cues', elt('CuePoint', b'\x01\x02'))))
    return build_mkv(children)
