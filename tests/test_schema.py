#!/usr/bin/env python3
"""
Test Schema Builder

Verifies how persistable declarations turn into schemas: identifier rules,
field checks, element type resolution, self-referential types, caching and
per-field laziness.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from hashmodel import (
    persistable, PersistableId, PersistableField, PersistableListField, lazy_load,
    FieldKind, SchemaBuilder, SchemaError, NotPersistableError, IdError
)
from hashmodel.core.persistable import TypeRegistry


@persistable
class Post:
    _post_id = PersistableId(int)
    _post_content = PersistableField(str)
    _replies = PersistableListField("Post", lazy=True)

    def __init__(self):
        self._replies = []


@persistable
class Author:
    _handle = PersistableId()
    _name = PersistableField()
    _posts = PersistableListField(Post)
    _drafts = PersistableListField("Post")


@persistable
class Folder:
    _path = PersistableId()
    _children = PersistableListField("Folder")
    _owner = PersistableListField("Owner")


@persistable
class Owner:
    _login = PersistableId()
    _folders = PersistableListField("Folder")


@persistable
class NoId:
    _text = PersistableField()


@persistable
class TwoIds:
    _first = PersistableId()
    _second = PersistableId()


@persistable
class NeedsArgs:
    _key = PersistableId()

    def __init__(self, key):
        self._key = key


@persistable
class PublicField:
    _key = PersistableId()
    title = PersistableField()


@persistable
class TupleContainer:
    _key = PersistableId()
    _items = PersistableListField("Post", container=tuple)


@persistable
class UnknownElement:
    _key = PersistableId()
    _items = PersistableListField("NoSuchThing")


@persistable
class BrokenParent:
    _key = PersistableId()
    _good = PersistableListField("Post")
    _bad = PersistableListField("NoSuchThing")


@persistable
class FloatField:
    _key = PersistableId()
    _ratio = PersistableField(float)


class Unmarked:
    _key = PersistableId()


@persistable
class Base:
    _key = PersistableId()


class Derived(Base):
    pass


def test_scalar_and_id_fields():
    """Test identifier and scalar field descriptors."""
    builder = SchemaBuilder()
    schema = builder.build(Post)

    assert schema.type is Post
    assert schema.id_field.attr_name == "_post_id"
    assert schema.id_field.stored_name == "post_id"
    assert schema.id_field.kind is FieldKind.INTEGER
    assert [f.stored_name for f in schema.scalar_fields] == ["post_content"]
    assert schema.scalar_fields[0].kind is FieldKind.TEXT
    assert list(schema.list_fields) == ["replies"]

    print("✓ Identifier and scalar fields described")


def test_self_referential_type_shares_schema():
    """Test that a type listing itself reuses its own schema instance."""
    builder = SchemaBuilder()
    schema = builder.build(Post)

    assert schema.list_fields["replies"].schema is schema
    assert builder.build(Post) is schema
    assert len(builder) == 1

    print("✓ Self-referential schema terminates and is shared")


def test_mutually_recursive_types():
    """Test two types referencing each other build once each."""
    builder = SchemaBuilder()
    folder = builder.build(Folder)
    owner = builder.build(Owner)

    assert folder.list_fields["children"].schema is folder
    assert folder.list_fields["owner"].schema is owner
    assert owner.list_fields["folders"].schema is folder
    assert len(builder) == 2

    print("✓ Mutually recursive schemas share instances")


def test_laziness_is_per_field():
    """Test that one lazy field does not make other fields lazy."""
    builder = SchemaBuilder()
    post = builder.build(Post)
    author = builder.build(Author)

    assert post.list_fields["replies"].lazy
    assert not author.list_fields["posts"].lazy
    assert not author.list_fields["drafts"].lazy
    assert author.list_fields["posts"].schema is post
    assert author.list_fields["drafts"].schema is post

    print("✓ Laziness stays on the declaring field")


def test_lazy_load_marks_field():
    """Test the lazy_load() helper."""
    field = lazy_load(PersistableListField("Post"))
    assert field.lazy

    try:
        lazy_load(PersistableField())
        assert False, "Should reject scalar fields"
    except TypeError:
        pass

    print("✓ lazy_load marks list fields only")


def test_identifier_rules():
    """Test that exactly one identifier field is required."""
    builder = SchemaBuilder()

    for cls in (NoId, TwoIds):
        try:
            builder.build(cls)
            assert False, f"{cls.__name__} should be rejected"
        except IdError:
            pass

    print("✓ Zero or two identifier fields rejected")


def test_rejected_declarations():
    """Test classes and fields the builder refuses."""
    builder = SchemaBuilder()

    for cls in (NeedsArgs, PublicField, TupleContainer, FloatField, Unmarked, Derived):
        try:
            builder.build(cls)
            assert False, f"{cls.__name__} should be rejected"
        except NotPersistableError:
            pass

    assert len(builder) == 0

    print("✓ Unpersistable classes and fields rejected")


def test_unresolvable_element_type():
    """Test that an unknown element type name fails the build."""
    builder = SchemaBuilder()

    try:
        builder.build(UnknownElement)
        assert False, "Should fail to resolve element type"
    except SchemaError as e:
        assert "NoSuchThing" in str(e)

    print("✓ Unresolvable element type raises SchemaError")


def test_failed_build_caches_nothing():
    """Test that a failing build leaves no partial schemas behind."""
    builder = SchemaBuilder()

    try:
        builder.build(BrokenParent)
        assert False, "Build should fail"
    except SchemaError:
        pass

    assert BrokenParent not in builder
    assert Post not in builder
    assert len(builder) == 0

    print("✓ Failed build caches nothing")


def test_schema_is_read_only():
    """Test that built schemas cannot be changed."""
    schema = SchemaBuilder().build(Post)
    assert schema.sealed

    try:
        schema.type_name = "other"
        assert False, "Sealed schema should reject attribute changes"
    except SchemaError:
        pass

    try:
        schema.list_fields["extra"] = schema.list_fields["replies"]
        assert False, "List field mapping should be read-only"
    except TypeError:
        pass

    print("✓ Built schemas are read-only")


def test_builder_cache_lookup():
    """Test that instances and classes give the same schema."""
    builder = SchemaBuilder()
    post = Post()

    assert builder.build(type(post)) is builder.build(Post)
    assert builder.get(Post) is builder.build(Post)

    builder.clear()
    assert builder.get(Post) is None

    print("✓ Builder cache lookup and clear work")


def test_registry_resolution_order():
    """Test element name resolution against a private registry."""
    registry = TypeRegistry()
    registry.register(Post)
    registry.register(Author)

    assert registry.resolve("Post", context_module=__name__) is Post
    assert registry.resolve(f"{__name__}.Author") is Author
    assert registry.resolve("Author") is Author
    assert registry.resolve("collections.OrderedDict").__name__ == "OrderedDict"
    assert registry.resolve("Missing") is None

    registry.unregister(Author)
    assert registry.resolve("Author") is None

    print("✓ Registry resolves module-relative, qualified and short names")


if __name__ == "__main__":
    test_scalar_and_id_fields()
    test_self_referential_type_shares_schema()
    test_mutually_recursive_types()
    test_laziness_is_per_field()
    test_lazy_load_marks_field()
    test_identifier_rules()
    test_rejected_declarations()
    test_unresolvable_element_type()
    test_failed_build_caches_nothing()
    test_schema_is_read_only()
    test_builder_cache_lookup()
    test_registry_resolution_order()
    print("\n🎉 All schema tests passed!")
