"""
Tag Tree Model: Tags, Tag and SimpleTag.

A Matroska file describes its metadata with Tag groups.  Each Tag has a target
(what it describes: the whole file, an album, a track, ...) and a list of
SimpleTag nodes, which are named values that may nest other SimpleTags, e.g.

    Tag (target type value 50)
      SimpleTag TITLE = 'Turning Lime'
      SimpleTag ARTIST = 'Lime'
        SimpleTag INSTRUMENTS = 'lead'

The model is plain Python objects built from the Tag elements, so it can be
changed freely and serialized back by to_element().

Names are matched case-insensitively, and may be paths such as
'ARTIST/INSTRUMENTS' to reach nested SimpleTags.  A language of None matches
any language.  Several SimpleTags may share a name; their document order is
kept, and "first value" means the first one in that order.
"""

from . import DetachedError
from .specdata import MATROSKA_SPECS
from .element import ElementMaster
from .data_elements import ElementTag, ElementSimpleTag

__all__ = ['Tags', 'Tag', 'SimpleTag', 'DEFAULT_LANGUAGE', 'TARGET_TYPES',
           'TARGET_COLLECTION', 'TARGET_EDITION', 'TARGET_ALBUM',
           'TARGET_PART', 'TARGET_TRACK', 'TARGET_SUBTRACK', 'TARGET_SHOT']

import logging
LOG = logging.getLogger(__name__)
LOG.setLevel(logging.INFO)

DEFAULT_LANGUAGE = 'und'

TARGET_COLLECTION = 70
TARGET_EDITION = 60
TARGET_ALBUM = 50
TARGET_PART = 40
TARGET_TRACK = 30
TARGET_SUBTRACK = 20
TARGET_SHOT = 10

# Target type names from the Matroska tagging guidelines (audio, video).
TARGET_TYPES = {
    TARGET_COLLECTION: ('COLLECTION', 'COLLECTION'),
    TARGET_EDITION: ('EDITION', 'SEASON'),
    TARGET_ALBUM: ('ALBUM', 'MOVIE'),
    TARGET_PART: ('PART', 'PART'),
    TARGET_TRACK: ('TRACK', 'CHAPTER'),
    TARGET_SUBTRACK: ('SUBTRACK', 'SCENE'),
    TARGET_SHOT: ('SHOT', 'SHOT'),
}


def _flatten(values):
    "Accept set(name, lang, 'a', 'b') as well as set(name, lang, ['a', 'b'])."
    if len(values) == 1 and isinstance(values[0], (list, tuple)):
        values = values[0]
    return [val for val in values if val is not None]

def _split(name):
    return [part.strip().upper() for part in name.split('/')]


class SimpleTag:
    """A named value, with nested SimpleTags.

    Attributes:
     + name: Upper-cased on assignment.
     + value: A string, or None for a node that only groups its children or
       holds a binary value.
     + binary: A bytes object, or None.
     + language: Language code, 'und' by default.
     + default: Whether this is the default value for the language.
     + children: List of nested SimpleTags.
    """

    def __init__(self, name, value=None, language=None, default=True,
                 binary=None, children=None):
        #pylint: disable=too-many-arguments
        self.name = name
        self.value = value
        self.binary = binary
        self.language = language or DEFAULT_LANGUAGE
        self.default = default
        self.children = list(children) if children else []

    @property
    def name(self):
        "The upper-case name."
        return self._name
    @name.setter
    def name(self, val):
        self._name = val.upper()

    def matches(self, name, language=None):
        "Check the name (case-insensitive) and language (None matches all)."
        return self.name == name.upper() \
            and (language is None or self.language == language)

    def __eq__(self, other):
        if not isinstance(other, SimpleTag):
            return NotImplemented
        return (self.name, self.value, self.binary, self.language,
                bool(self.default), self.children) == \
            (other.name, other.value, other.binary, other.language,
             bool(other.default), other.children)

    def __ne__(self, other):
        return not self == other

    def __repr__(self):
        ret = "SimpleTag({!r}, {!r}".format(self.name, self.value)
        if self.language != DEFAULT_LANGUAGE:
            ret += ", language={!r}".format(self.language)
        if self.children:
            ret += ", children={!r}".format(self.children)
        return ret + ")"

    @classmethod
    def from_element(cls, elt):
        """Build from an ElementSimpleTag.

        Returns None if the element has no TagName.  Nested elements without
        a TagName are dropped the same way.
        """
        if elt.tag_name is None:
            LOG.warning("Dropping SimpleTag without TagName at {}"
                        .format(elt.pos_absolute))
            return None
        children = (cls.from_element(child) for child in elt.sub_tags)
        return cls(elt.tag_name, elt.string_val, elt.language,
                   elt.default, elt.binary_val,
                   [child for child in children if child is not None])

    def to_element(self):
        "Serialize to a new ElementSimpleTag, children after the value."
        elt = ElementSimpleTag.new_with_value(self.name, self.value,
                                              lang=self.language)
        if not self.default:
            elt.default = False
        if self.binary is not None and self.value is None:
            elt.binary_val = self.binary
        for child in self.children:
            elt.add_child(child.to_element())
        return elt


class Tag:
    """A Tag group: a target and its SimpleTags.

    Attributes:
     + tags: The Tags collection holding this Tag, or None if detached.
       Changing the SimpleTags of a detached Tag raises DetachedError.
     + target_type_value: 70 (collection) down to 10 (shot); 50 by default.
     + target_type: Optional target type name, e.g. 'ALBUM'.
     + track_uids, edition_uids, chapter_uids, attachment_uids: Lists of UIDs
       narrowing the target.  All empty means the whole file.
     + simple_tags: List of top-level SimpleTags.
    """

    def __init__(self, tags=None, target_type_value=TARGET_ALBUM,
                 target_type=None):
        self.tags = None
        self.target_type_value = target_type_value
        self.target_type = target_type
        self.track_uids = []
        self.edition_uids = []
        self.chapter_uids = []
        self.attachment_uids = []
        self.simple_tags = []
        if tags is not None:
            tags.add(self)

    @property
    def has_uid_targets(self):
        "True if the Tag targets specific tracks, editions, chapters, files."
        return bool(self.track_uids or self.edition_uids or self.chapter_uids
                    or self.attachment_uids)

    def _check_attached(self):
        if self.tags is None:
            raise DetachedError("Tag {!r} does not belong to any Tags"
                                .format(self))

    def _containers(self, parts, create=False):
        """Return the child lists that the last path component lives in.

        With create=True a missing parent node is created, so that exactly
        one list is returned.
        """
        lists = [self.simple_tags]
        for part in parts[:-1]:
            parents = [node for nodes in lists for node in nodes
                       if node.matches(part)]
            if not parents and create:
                parent = SimpleTag(part)
                lists[0].append(parent)
                parents = [parent]
            lists = [node.children for node in parents]
            if create:
                lists = lists[:1]
        return lists

    def find(self, name, language=None):
        "Return matching SimpleTag nodes in document order."
        parts = _split(name)
        return [node for nodes in self._containers(parts) for node in nodes
                if node.matches(parts[-1], language)]

    def get(self, name, language=None):
        """Return the values of matching SimpleTags in document order.

        Nodes without a string value are skipped.
        """
        return [node.value for node in self.find(name, language)
                if node.value is not None]

    def set(self, name, language, *values):
        """Replace all values of the SimpleTags matching name and language.

        Existing nodes are reused in document order, so their nested children
        are kept.  Surplus nodes are removed and missing ones appended.
        Setting no value removes the name.
        """
        self._check_attached()
        values = _flatten(values)
        parts = _split(name)
        if not values:
            self.remove(name, language)
            return
        nodes = self._containers(parts, create=True)[0]
        matching = [node for node in nodes if node.matches(parts[-1], language)]
        for node, value in zip(matching, values):
            node.value = value
            node.binary = None
        for node in matching[len(values):]:
            nodes.remove(node)
        for value in values[len(matching):]:
            nodes.append(SimpleTag(parts[-1], value, language))

    def append(self, name, language, *values):
        "Add values without removing existing ones."
        self._check_attached()
        values = _flatten(values)
        parts = _split(name)
        if not values:
            return
        nodes = self._containers(parts, create=True)[0]
        for value in values:
            nodes.append(SimpleTag(parts[-1], value, language))

    def remove(self, name, language=None):
        "Remove matching SimpleTags.  Return how many were removed."
        self._check_attached()
        parts = _split(name)
        count = 0
        for nodes in self._containers(parts):
            for node in [node for node in nodes
                         if node.matches(parts[-1], language)]:
                nodes.remove(node)
                count += 1
        return count

    def __eq__(self, other):
        if not isinstance(other, Tag):
            return NotImplemented
        return self._key() == other._key()

    def __ne__(self, other):
        return not self == other

    def _key(self):
        return (self.target_type_value, self.target_type, self.track_uids,
                self.edition_uids, self.chapter_uids, self.attachment_uids,
                self.simple_tags)

    def __repr__(self):
        return "<Tag {} {} simple tags{}>".format(
            self.target_type_value, len(self.simple_tags),
            "" if self.tags is not None else " (detached)")

    @classmethod
    def from_element(cls, elt, tags=None):
        "Build from an ElementTag, attaching to tags."
        ret = cls(tags, elt.target_type_value, elt.target_type)
        ret.track_uids = elt.track_uids
        ret.edition_uids = elt.edition_uids
        ret.chapter_uids = elt.chapter_uids
        ret.attachment_uids = elt.attachment_uids
        for child in elt.simple_tags:
            simple = SimpleTag.from_element(child)
            if simple is not None:
                ret.simple_tags.append(simple)
        return ret

    def to_element(self):
        "Serialize to a new ElementTag."
        elt = ElementTag.new_with_value(self.target_type_value,
                                        self.target_type)
        for name, uids in (('TagTrackUID', self.track_uids),
                           ('TagEditionUID', self.edition_uids),
                           ('TagChapterUID', self.chapter_uids),
                           ('TagAttachmentUID', self.attachment_uids)):
            for uid in uids:
                elt.targets.add_child(
                    MATROSKA_SPECS[name].cls.new_with_value(name, uid))
        for simple in self.simple_tags:
            elt.add_child(simple.to_element())
        return elt


class Tags:
    """The Tag groups of a file, in document order.

    Attributes:
     + is_video: Whether the file has a video track.  This decides the target
       type value of the Tag describing the whole file (the medium): 50 for
       video, 30 otherwise.
    """

    def __init__(self, is_video=False):
        self._list = []
        self.is_video = is_video

    @classmethod
    def from_segment(cls, segment):
        "Build the model from the Tag elements of a Segment (may be None)."
        if segment is None:
            return cls()
        ret = cls(segment.is_video)
        for elt in segment.tags:
            Tag.from_element(elt, ret)
        return ret

    def __iter__(self):
        return iter(list(self._list))
    def __len__(self):
        return len(self._list)
    def __getitem__(self, index):
        return self._list[index]

    def __eq__(self, other):
        if not isinstance(other, Tags):
            return NotImplemented
        return self._list == other._list

    def __ne__(self, other):
        return not self == other

    def add(self, tag):
        "Attach a Tag, detaching it from any other Tags first."
        if tag.tags is self:
            return
        if tag.tags is not None:
            tag.tags.remove(tag)
        tag.tags = self
        self._list.append(tag)

    def remove(self, tag):
        "Detach a Tag."
        self._list.remove(tag)
        tag.tags = None

    @property
    def medium(self):
        "Target type value of the Tag describing the whole file."
        return TARGET_ALBUM if self.is_video else TARGET_TRACK

    def primary(self, create=False):
        """Return the first Tag for the whole file, or None.

        This is a Tag whose target type value is the medium value and that has
        no UID targets.  If there is none and create is True, create it.
        """
        for tag in self._list:
            if tag.target_type_value == self.medium \
               and not tag.has_uid_targets:
                return tag
        if create:
            return Tag(self, self.medium)
        return None

    def album(self, create=False):
        """Return the Tag for the album (or collection) of this file, or None.

        This is the first Tag, in document order, with the smallest target
        type value above the medium value.  If there is none and create is
        True, create one with value 70 for video and 50 otherwise.
        """
        candidates = [tag for tag in self._list
                      if tag.target_type_value > self.medium
                      and not tag.has_uid_targets]
        if candidates:
            lowest = min(tag.target_type_value for tag in candidates)
            return next(tag for tag in candidates
                        if tag.target_type_value == lowest)
        if create:
            return Tag(self, TARGET_COLLECTION if self.is_video
                       else TARGET_ALBUM)
        return None

    def for_track(self, uid):
        "Return the Tags targeting the track with this UID."
        return [tag for tag in self._list if uid in tag.track_uids]

    def to_element(self):
        """Serialize to a new Tags element, or None if there are no Tags.

        Tag groups without SimpleTags are written too, so that their target
        survives.
        """
        if not self._list:
            return None
        elt = ElementMaster.new('Tags')
        for tag in self._list:
            elt.add_child(tag.to_element())
        return elt
