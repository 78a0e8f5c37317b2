#pylint: disable=logging-format-interpolation
"""
MatroskaFile: open a Matroska file, read and change its tags, save it.

    with MatroskaFile('movie.mkv') as mkv:
        print(mkv.tag.title, mkv.properties.duration)
        mkv.tag.performers = ['Lime']
        mkv.get_tag(TAG_TYPE_MATROSKA).set('CHOREGRAPHER', None, 'Starwer')
        mkv.save()

Saving never modifies the source in place: a new file is written next to it
and then moved over it (or, for a stream, written to a temporary file and only
then copied back), so a failed save leaves the source untouched.
"""

import os
import math
import tempfile
from io import IOBase
from os import SEEK_SET

from .container import File
from .model import Tags
from .attachments import AttachmentStore
from .facade import GenericTag
from .writer import TagWriter, COPY_CHUNK_SIZE

__all__ = ['MatroskaFile', 'Properties', 'TAG_TYPE_MATROSKA']

import logging
LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

TAG_TYPE_MATROSKA = 'matroska'


class Properties:
    """Audio and video properties, from the Segment Info and Tracks.

    Attributes:
     + duration: In seconds (float), 0.0 if unknown.
     + duration_ms: In milliseconds (int).
     + audio_sample_rate, audio_channels, bits_per_sample: From the first
       audio track; 0 if there is none.
     + video_width, video_height: From the first video track; 0 if none.
     + codecs: List of CodecID strings, one per track.
     + is_video: True if there is a video track.
    """
    #pylint: disable=too-few-public-methods,too-many-instance-attributes

    def __init__(self, segment=None):
        self.duration = 0.0
        self.audio_sample_rate = 0
        self.audio_channels = 0
        self.bits_per_sample = 0
        self.video_width = 0
        self.video_height = 0
        self.codecs = []
        self.is_video = False
        if segment is None:
            return
        duration = segment.duration
        # Corrupt floats may be NaN or overflow once scaled to milliseconds
        if duration is not None and math.isfinite(duration * 1000):
            self.duration = duration
        for track in segment.tracks:
            self.codecs.append(track.codec_id)
            if track.audio is not None and not self.audio_sample_rate:
                frequency = track.audio.sampling_frequency
                if math.isfinite(frequency):
                    self.audio_sample_rate = int(frequency)
                self.audio_channels = track.audio.channels
                self.bits_per_sample = track.audio.bit_depth or 0
            if track.video is not None and not self.is_video:
                self.is_video = True
                self.video_width = track.video.pixel_width or 0
                self.video_height = track.video.pixel_height or 0

    @property
    def duration_ms(self):
        "Duration in milliseconds."
        return int(round(self.duration * 1000))

    def __repr__(self):
        return "<Properties {:.3f}s {}Hz x{} {}x{} {}>".format(
            self.duration, self.audio_sample_rate, self.audio_channels,
            self.video_width, self.video_height, self.codecs)


class MatroskaFile:
    """A Matroska file with its tags, attachments and properties.

    Attributes:
     + tag: GenericTag view of the tags and attachments.
     + tags: The Tags model.
     + attachments: The AttachmentStore.  Empty (and never rewritten unless
       replaced) if read_pictures is False.
     + properties: Properties instance.
     + defects: List of container.Defect found while reading.
     + ebml_file: The underlying container.File.
    """

    def __init__(self, source, *, read_pictures=True):
        """Args:
         + source: A file name or a seekable binary stream.  A stream is not
           closed by close().
         + read_pictures: If False, don't read the attached files.
        """
        self.source = source
        self.read_pictures = read_pictures
        self.ebml_file = None
        self._read()

    def _read(self):
        self.ebml_file = File(self.source)
        segment = self.ebml_file.segment
        if segment is None:
            LOG.warning("No Segment found; tags will be empty")
        self.tags = Tags.from_segment(segment)
        if self.read_pictures:
            self.attachments = AttachmentStore.from_segment(segment)
        else:
            self.attachments = AttachmentStore()
        self.properties = Properties(segment)
        self.tag = GenericTag(self.tags, self.attachments)

    @property
    def defects(self):
        "Defects found while reading."
        return self.ebml_file.defects

    def get_tag(self, tag_type, create=False):
        """Return the format-specific tag handle.

        For TAG_TYPE_MATROSKA this is the Tag describing the whole file (the
        primary Tag), created if absent and create is True.  Any other tag
        type returns None.
        """
        if tag_type != TAG_TYPE_MATROSKA:
            return None
        return self.tags.primary(create)

    def __enter__(self):
        return self

    def __exit__(self, _var1, _var2, _var3):
        self.close()

    def close(self):
        "Release the stream if it was opened here."
        if self.ebml_file is not None:
            self.ebml_file.close()

    def save(self):
        """Write the tags and attachments back.

        The file is parsed again afterwards, so positions and defects reflect
        the new file.

        Raises:
         + Inconsistent, if the file has no Segment.
         + OSError: if writing fails.  The source is left unmodified.
        """
        writer = TagWriter(self.ebml_file, self.tags, self.attachments)
        if isinstance(self.source, IOBase):
            self._save_stream(writer)
        else:
            self._save_path(writer)
        LOG.info("Saved {!r}".format(self.source))
        self._read()

    def _save_path(self, writer):
        dirname = os.path.dirname(os.path.abspath(self.source))
        fd, tmp_path = tempfile.mkstemp(prefix='.mkvtag-', suffix='.tmp',
                                        dir=dirname)
        try:
            with os.fdopen(fd, 'wb') as out:
                writer.write(out)
            if os.path.exists(self.source):
                os.chmod(tmp_path, os.stat(self.source).st_mode & 0o7777)
            self.ebml_file.close()
            os.replace(tmp_path, self.source)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            if self.ebml_file.stream is None:
                # The source is unchanged; read it again.
                self._read()
            raise

    def _save_stream(self, writer):
        stream = self.source
        with tempfile.SpooledTemporaryFile(max_size=COPY_CHUNK_SIZE * 16) \
             as out:
            writer.write(out)
            out.seek(0, SEEK_SET)
            stream.seek(0, SEEK_SET)
            while True:
                chunk = out.read(COPY_CHUNK_SIZE)
                if not chunk:
                    break
                stream.write(chunk)
            stream.truncate()
            stream.flush()
        stream.seek(0, SEEK_SET)
