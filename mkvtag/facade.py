"""
Generic Facade: format-agnostic tag properties over the Tag Tree Model.

GenericTag keeps no state of its own.  Each property is described by a row of
FACADE_MAPPING: the SimpleTag names it is read from (by precedence; the first
name is the one written), the scope of the Tag it lives in and its
cardinality.  Reading a 'single' property returns the first value in document
order; reading a 'multiple' property returns all values of the first name that
has any.  A 'per node' property is a 'PARENT/CHILD' path: one value nested
under each PARENT node, such as the role or sort name of each performer.

The medium scope is the primary Tag (the whole file), and the album scope is
the Tag just above it (see Tags.album()).
"""

import re

from .attachments import ROLE_FRONT_COVER
from .model import SimpleTag

__all__ = ['GenericTag', 'FACADE_MAPPING', 'SEPARATOR', 'SCOPE_MEDIUM',
           'SCOPE_ALBUM', 'SINGLE', 'MULTIPLE', 'PER_NODE']

SEPARATOR = "; "

SCOPE_MEDIUM = 'medium'
SCOPE_ALBUM = 'album'
SINGLE = 'single'
MULTIPLE = 'multiple'
PER_NODE = 'per node'

FACADE_MAPPING = {
    'title': (('TITLE',), SCOPE_MEDIUM, SINGLE),
    'title_sort': (('TITLE/SORT_WITH',), SCOPE_MEDIUM, SINGLE),
    'subtitle': (('SUBTITLE',), SCOPE_MEDIUM, SINGLE),
    'album': (('TITLE',), SCOPE_ALBUM, SINGLE),
    'album_sort': (('TITLE/SORT_WITH',), SCOPE_ALBUM, SINGLE),
    'performers': (('ARTIST', 'LEAD_PERFORMER'), SCOPE_MEDIUM, MULTIPLE),
    'performers_sort': (('ARTIST/SORT_WITH',), SCOPE_MEDIUM, PER_NODE),
    'performers_role': (('ARTIST/INSTRUMENTS',), SCOPE_MEDIUM, PER_NODE),
    'album_artists': (('ARTIST',), SCOPE_ALBUM, MULTIPLE),
    'album_artists_sort': (('ARTIST/SORT_WITH',), SCOPE_ALBUM, PER_NODE),
    'composers': (('COMPOSER',), SCOPE_MEDIUM, MULTIPLE),
    'composers_sort': (('COMPOSER/SORT_WITH',), SCOPE_MEDIUM, PER_NODE),
    'genres': (('GENRE',), SCOPE_MEDIUM, MULTIPLE),
    'year': (('DATE_RELEASED', 'DATE_RECORDED'), SCOPE_MEDIUM, SINGLE),
    'track': (('PART_NUMBER',), SCOPE_MEDIUM, SINGLE),
    'track_count': (('TOTAL_PARTS',), SCOPE_MEDIUM, SINGLE),
    'disc': (('PART_NUMBER',), SCOPE_ALBUM, SINGLE),
    'disc_count': (('TOTAL_PARTS',), SCOPE_ALBUM, SINGLE),
    'grouping': (('GROUPING',), SCOPE_MEDIUM, SINGLE),
    'beats_per_minute': (('BPM',), SCOPE_MEDIUM, SINGLE),
    'conductor': (('CONDUCTOR',), SCOPE_MEDIUM, SINGLE),
    'copyright': (('COPYRIGHT',), SCOPE_MEDIUM, SINGLE),
    'comment': (('COMMENT',), SCOPE_MEDIUM, SINGLE),
    'description': (('DESCRIPTION',), SCOPE_MEDIUM, SINGLE),
    'lyrics': (('LYRICS',), SCOPE_MEDIUM, SINGLE),
}

_YEAR = re.compile(r'^\s*(\d{4})')
_NUMBER = re.compile(r'^\s*(\d+)')


def _nested(prop):
    "True for properties stored under another SimpleTag."
    return '/' in FACADE_MAPPING[prop][0][0]

def _read(gtag, prop):
    "Resolve a mapped property: list of values (empty if none)."
    names, scope, cardinality = FACADE_MAPPING[prop]
    tag = gtag.scope(scope)
    if tag is None:
        return []
    if cardinality == PER_NODE:
        return _read_nodes(tag, names[0])
    for name in names:
        values = tag.get(name)
        if values:
            return values
    return []

def _read_nodes(tag, path):
    "The first CHILD value under each PARENT node; None where there is none."
    parent, child = path.split('/')
    ret = []
    for node in tag.find(parent):
        values = [sub.value for sub in node.children
                  if sub.matches(child) and sub.value is not None]
        ret.append(values[0] if values else None)
    while ret and ret[-1] is None:
        ret.pop()
    return ret

def _write(gtag, prop, values):
    "Write a mapped property; None or empty clears all its names."
    names, scope, cardinality = FACADE_MAPPING[prop]
    if values is None:
        values = []
    elif isinstance(values, str):
        values = [values]
    if cardinality == PER_NODE:
        values = list(values)
        tag = gtag.scope(scope, create=any(values))
        if tag is not None:
            _write_nodes(tag, names[0], values)
        return
    values = [val for val in values if val]
    if not values:
        tag = gtag.scope(scope)
        if tag is not None:
            for name in names:
                tag.remove(name)
        return
    tag = gtag.scope(scope, create=True)
    tag.set(names[0], None, values)
    for name in names[1:]:
        tag.remove(name)

def _write_nodes(tag, path, values):
    """Nest one value under each PARENT node, in order.

    Missing PARENT nodes are created without a value.  Valueless PARENT nodes
    left with nothing nested are removed.
    """
    parent, child = path.split('/')
    tag.remove(path)
    for node in tag.find(parent):
        if node.value is None and not node.children \
           and node in tag.simple_tags:
            tag.simple_tags.remove(node)
    while values and not values[-1]:
        values.pop()
    nodes = tag.find(parent)
    while len(nodes) < len(values):
        node = SimpleTag(parent)
        tag.simple_tags.append(node)
        nodes.append(node)
    for node, value in zip(nodes, values):
        if value:
            node.children.append(SimpleTag(child, value))

def _single(prop):
    def getter(self):
        values = _read(self, prop)
        return values[0] if values else None
    def setter(self, val):
        _write(self, prop, val)
    return property(getter, setter, doc="First {} value.".format(prop))

def _multiple(prop):
    def getter(self):
        return _read(self, prop)
    def setter(self, val):
        _write(self, prop, val)
    return property(getter, setter, doc="All {} values.".format(prop))

def _number(prop, pattern=_NUMBER):
    def getter(self):
        values = _read(self, prop)
        match = pattern.match(values[0]) if values else None
        return int(match.group(1)) if match else None
    def setter(self, val):
        _write(self, prop, str(val) if val else None)
    return property(getter, setter,
                    doc="{} as an int, from the leading digits.".format(prop))

def _first(prop):
    def getter(self):
        values = getattr(self, prop)
        return values[0] if values else None
    return property(getter, doc="First of {}.".format(prop))

def _joined(prop):
    def getter(self):
        return SEPARATOR.join(val or '' for val in getattr(self, prop))
    return property(getter, doc="{} joined with SEPARATOR.".format(prop))


class GenericTag:
    """View of a Tags model (and an AttachmentStore) as generic properties.

    Properties (read-write) are the keys of FACADE_MAPPING, plus pictures.
    Numbers (year, track, track_count, disc, disc_count, beats_per_minute)
    are ints read from the leading digits of their value; setting 0 clears
    them.  Read-only helpers: first_performer, first_album_artist,
    first_genre, first_composer, front_cover and the joined_* strings.

    Sort names and roles are nested under the value they belong to, so
    clearing a title or a performer clears its sort name too.
    """

    def __init__(self, tags, attachments=None):
        self.tags = tags
        self.attachments = attachments

    def scope(self, scope, create=False):
        "Return the Tag for a scope, or None."
        if scope == SCOPE_ALBUM:
            return self.tags.album(create)
        return self.tags.primary(create)

    title = _single('title')
    title_sort = _single('title_sort')
    subtitle = _single('subtitle')
    album = _single('album')
    album_sort = _single('album_sort')
    grouping = _single('grouping')
    conductor = _single('conductor')
    copyright = _single('copyright')
    comment = _single('comment')
    description = _single('description')
    lyrics = _single('lyrics')
    performers = _multiple('performers')
    performers_sort = _multiple('performers_sort')
    performers_role = _multiple('performers_role')
    album_artists = _multiple('album_artists')
    album_artists_sort = _multiple('album_artists_sort')
    composers = _multiple('composers')
    composers_sort = _multiple('composers_sort')
    genres = _multiple('genres')
    year = _number('year', _YEAR)
    track = _number('track')
    track_count = _number('track_count')
    disc = _number('disc')
    disc_count = _number('disc_count')
    beats_per_minute = _number('beats_per_minute')

    first_performer = _first('performers')
    first_album_artist = _first('album_artists')
    first_genre = _first('genres')
    first_composer = _first('composers')
    joined_performers = _joined('performers')
    joined_performers_sort = _joined('performers_sort')
    joined_album_artists = _joined('album_artists')
    joined_genres = _joined('genres')
    joined_composers = _joined('composers')
    joined_performers_role = _joined('performers_role')

    @property
    def pictures(self):
        "The attachments, in order (pictures and other files)."
        if self.attachments is None:
            return []
        return list(self.attachments)
    @pictures.setter
    def pictures(self, attachments):
        self.attachments.replace(attachments or [])

    @property
    def front_cover(self):
        "The front cover attachment, or None."
        for att in self.pictures:
            if att.role == ROLE_FRONT_COVER:
                return att
        return None

    @property
    def is_empty(self):
        """True if no mapped property has a value.

        Nested properties (sort names, roles) are not content of their own.
        """
        return not any(_read(self, prop) for prop in FACADE_MAPPING
                       if not _nested(prop)) \
            and not self.pictures

    def clear(self):
        "Clear all mapped properties."
        for prop in FACADE_MAPPING:
            _write(self, prop, None)
