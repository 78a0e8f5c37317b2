"""
The Parsed property.
"""

__all__ = ['Parsed', 'create_atomic']

class Parsed:
    """Property that gets and sets its value from a child element.

    The child is the first one (in stream order) with the given EBML ID whose
    value is not 'skip'.
    """
    #pylint: disable=too-few-public-methods,too-many-instance-attributes

    unset = object() # For distinguishing unset from None

    def __init__(self, name_or_id, getter, setter=None, creator=None,
                 default=unset, skip=unset):
        """Make a new Parsed property.

        Args:
         + name_or_id: The name or EBML ID of the child element in which to find
           the property value.
         + getter: A function getter(self, child) that takes a child and returns
           its value.  If a string, return the child's attribute of that name.
           If the empty string '', return the child itself.
         + setter: A function setter(self, child, val) that sets the value of
           child to val.  If a string, set the child's attribute of that name.
           If None, the property is read-only.
         + creator: A function creator(self, ebml_id, val) returning a new child
           element containing val, appended when no child exists yet.  If None,
           setting the property without a child raises AttributeError.
         + default: The value of the property if no child is found.  If unset,
           use the spec default, or as a last resort None.  If callable, run
           default(self) to get the default.
         + skip: If set, ignore children whose value equals skip.
        """
        #pylint: disable=too-many-arguments
        self._name_or_id = name_or_id
        self.spec = None
        self.getter = getter
        self.setter = setter
        self.creator = creator
        self.default = default
        self.skip = skip

    @property
    def ebml_id(self):
        "EBML ID of the child element."
        return self._spec().ebml_id

    def _spec(self):
        "Look up the spec; MATROSKA_SPECS can't be used at class creation."
        if self.spec is None:
            from .specdata import MATROSKA_SPECS
            self.spec = MATROSKA_SPECS[self._name_or_id]
        return self.spec

    def _value_of(self, instance, child):
        if isinstance(self.getter, str):
            if self.getter == '':
                return child
            return getattr(child, self.getter)
        return self.getter(instance, child)

    def __get__(self, instance, owner):
        if instance is None:
            return self
        for child in instance.children_with_id(self.ebml_id):
            value = self._value_of(instance, child)
            if self.skip is not self.unset and value == self.skip:
                continue
            return value
        if self.default is not self.unset:
            if callable(self.default):
                return self.default(instance)
            return self.default
        return getattr(self._spec(), 'default', None)

    def __set__(self, instance, value):
        if self.setter is None:
            raise AttributeError("Tried to set read-only Parsed property {}"
                                 .format(self._spec().name))
        child = next(instance.children_with_id(self.ebml_id), None)
        if child is None:
            if not self.creator:
                raise AttributeError("Tried to set child value, "
                                     "but no such child exists")
            instance.add_child(self.creator(instance, self.ebml_id, value))
            return
        if isinstance(self.setter, str):
            setattr(child, self.setter, value)
        else:
            self.setter(instance, child, value)

    def __delete__(self, instance):
        for child in list(instance.children_with_id(self.ebml_id)):
            instance.remove_child(child)

def create_atomic(childcls=None):
    """Return a function that creates a child using new_with_value.

    The return value is a function (closure) of the form
       creator(obj, ebml_id, val)
    suitable for use as a Parsed creator.

    Args:
    + childcls: The class to create.  Must have a new_with_value class method.
      If None, use the class of the spec for ebml_id.
    """
    def creator(instance, ebml_id, val):
        "Create an element using new_with_value()."
        #pylint: disable=unused-argument
        from .specdata import MATROSKA_SPECS
        cls = childcls or MATROSKA_SPECS[ebml_id].cls
        return cls.new_with_value(ebml_id, val)

    return creator
