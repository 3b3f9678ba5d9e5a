# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
from enum import Enum
from pathlib import Path
from typing import Annotated, Dict, List, Optional, Set

import pytest
from pydantic import BaseModel, Field

from tradefed.diagnostics import ConfigurationError
from tradefed.option import Option, OptionUpdateRule, option_class
from tradefed.setter import OptionSetter, get_option_table


class Level(Enum):
    LOW = 1
    HIGH = 2


class AllTypes:
    flag: Annotated[bool, Option("flag", short_name="f")]
    count: Annotated[int, Option("count")]
    ratio: Annotated[float, Option("ratio")]
    label: Annotated[str, Option("label")]
    path: Annotated[Path, Option("path")]
    level: Annotated[Level, Option("level")]
    items: Annotated[List[str], Option("item")]
    numbers: Annotated[Set[int], Option("number")]
    props: Annotated[Dict[str, int], Option("prop")]
    unset: Annotated[Optional[int], Option("unset")]
    not_an_option: int

    def __init__(self):
        self.flag = False
        self.count = 0
        self.ratio = 0.0
        self.label = "default"
        self.path = None
        self.level = Level.LOW
        self.items = []
        self.numbers = set()
        self.props = {}
        self.unset = None
        self.not_an_option = 0


class Base:
    base_value: Annotated[str, Option("base-value")]

    def __init__(self):
        self.base_value = "base"


class Derived(Base):
    derived_value: Annotated[int, Option("derived-value")]

    def __init__(self):
        super().__init__()
        self.derived_value = 1


class Other:
    label: Annotated[str, Option("label")]

    def __init__(self):
        self.label = "other"


class ModelOptions(BaseModel):
    name: Annotated[str, Option("model-name")] = "m"
    tags: Annotated[List[str], Option("tag")] = Field(default_factory=list)
    plain: int = 3


## {{{                        --     discovery     --


def test_option_table_includes_inherited_options():
    names = [d.option.name for d in get_option_table(Derived)]
    assert names == ["derived-value", "base-value"]


def test_option_table_ignores_plain_annotations():
    names = {d.option.name for d in get_option_table(AllTypes)}
    assert "not_an_option" not in names
    assert len(names) == 10


def test_pydantic_model_options():
    model = ModelOptions()
    setter = OptionSetter(model)
    setter.set_option_value("model-name", "renamed")
    setter.set_option_value("tag", "a")
    setter.set_option_value("tag", "b")
    assert model.name == "renamed"
    assert model.tags == ["a", "b"]
    with pytest.raises(ConfigurationError, match="Could not find option"):
        setter.set_option_value("plain", "4")


def test_sources_as_a_list():
    a, b = Derived(), AllTypes()
    setter = OptionSetter([a, b])
    assert setter.sources == [a, b]


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                        --     set values     --


def test_set_scalar_values():
    obj = AllTypes()
    setter = OptionSetter(obj)
    setter.set_option_value("count", "12")
    setter.set_option_value("ratio", "0.5")
    setter.set_option_value("label", "hello")
    setter.set_option_value("path", "/tmp/out.txt")
    setter.set_option_value("level", "high")
    setter.set_option_value("unset", "9")
    assert obj.count == 12
    assert obj.ratio == 0.5
    assert obj.label == "hello"
    assert obj.path == Path("/tmp/out.txt")
    assert obj.level is Level.HIGH
    assert obj.unset == 9


def test_boolean_keys():
    obj = AllTypes()
    setter = OptionSetter(obj)
    assert setter.is_boolean_option("flag")
    assert setter.is_boolean_option("f")
    assert setter.is_boolean_option("no-flag")
    assert not setter.is_boolean_option("count")
    setter.set_option_value("f", "yes")
    assert obj.flag is True
    setter.set_option_value("no-flag", "false")
    assert obj.flag is False


def test_last_value_wins_for_scalars():
    obj = AllTypes()
    setter = OptionSetter(obj)
    setter.set_option_value("count", "1")
    setter.set_option_value("count", "2")
    assert obj.count == 2


def test_containers_append():
    obj = AllTypes()
    original = obj.items
    setter = OptionSetter(obj)
    setter.set_option_value("item", "a")
    setter.set_option_value("item", "b")
    setter.set_option_value("number", "3")
    setter.set_option_value("number", "3")
    assert obj.items == ["a", "b"]
    assert obj.items is original
    assert obj.numbers == {3}


def test_container_without_storage():
    obj = AllTypes()
    obj.items = None
    with pytest.raises(ConfigurationError, match="no storage allocated"):
        OptionSetter(obj).set_option_value("item", "a")


def test_map_values():
    obj = AllTypes()
    setter = OptionSetter(obj)
    assert setter.is_map_option("prop")
    setter.set_option_map_value("prop", "a", "1")
    setter.set_option_map_value("prop", "a", "2")
    setter.set_option_map_value("prop", "b", "3")
    assert obj.props == {"a": 2, "b": 3}


def test_map_errors_name_key_or_value():
    class IntKeys:
        table: Annotated[Dict[int, int], Option("table")]

        def __init__(self):
            self.table = {}

    setter = OptionSetter(IntKeys())
    with pytest.raises(ConfigurationError, match="for the key of mapoption 'table'"):
        setter.set_option_map_value("table", "x", "1")
    with pytest.raises(ConfigurationError, match="for the value of mapoption 'table'"):
        setter.set_option_map_value("table", "1", "y")


def test_map_option_needs_a_key():
    with pytest.raises(ConfigurationError, match="requires a key"):
        OptionSetter(AllTypes()).set_option_value("prop", "1")


def test_map_value_on_non_map_option():
    with pytest.raises(ConfigurationError, match="not a map option"):
        OptionSetter(AllTypes()).set_option_map_value("count", "k", "1")


def test_conversion_failure_message():
    setter = OptionSetter(AllTypes())
    with pytest.raises(ConfigurationError) as excinfo:
        setter.set_option_value("count", "many")
    assert str(excinfo.value) == "Couldn't convert 'many' to a int for option 'count'"


def test_unknown_option():
    with pytest.raises(ConfigurationError, match="Could not find option with name nope"):
        OptionSetter(AllTypes()).set_option_value("nope", "1")


def test_get_type_for_option():
    setter = OptionSetter(AllTypes())
    assert setter.get_type_for_option("count") == "int"
    assert setter.get_type_for_option("item") == "List[str]"


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                       --     update rules     --


class Ruled:
    first: Annotated[Optional[str], Option("first", update_rule=OptionUpdateRule.FIRST)]
    greatest: Annotated[int, Option("greatest", update_rule=OptionUpdateRule.GREATEST)]
    frozen: Annotated[Optional[str], Option("frozen", update_rule=OptionUpdateRule.IMMUTABLE)]
    many: Annotated[List[int], Option("many", update_rule=OptionUpdateRule.IMMUTABLE)]

    def __init__(self):
        self.first = None
        self.greatest = 0
        self.frozen = None
        self.many = []


def test_update_rules_are_applied():
    obj = Ruled()
    setter = OptionSetter(obj)
    setter.set_option_value("first", "a")
    setter.set_option_value("first", "b")
    setter.set_option_value("greatest", "5")
    setter.set_option_value("greatest", "2")
    setter.set_option_value("frozen", "x")
    assert obj.first == "a"
    assert obj.greatest == 5
    assert obj.frozen == "x"
    with pytest.raises(ConfigurationError, match="immutable"):
        setter.set_option_value("frozen", "y")


def test_update_rules_ignored_for_containers():
    obj = Ruled()
    setter = OptionSetter(obj)
    setter.set_option_value("many", "1")
    setter.set_option_value("many", "2")
    assert obj.many == [1, 2]


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                  --     collisions and namespaces     --


def test_duplicate_option_across_classes_fails():
    with pytest.raises(ConfigurationError, match="Duplicate option 'label'"):
        OptionSetter(AllTypes(), Other())


def test_duplicate_option_in_one_class_fails():
    class Twice:
        a: Annotated[int, Option("same")]
        b: Annotated[int, Option("same")]

    with pytest.raises(ConfigurationError, match="defined more than once"):
        OptionSetter(Twice())


def test_short_name_collision_fails():
    class ShortF:
        other: Annotated[bool, Option("other", short_name="f")]

    with pytest.raises(ConfigurationError, match="Duplicate option 'f'"):
        OptionSetter(AllTypes(), ShortF())


def test_negation_collision_fails():
    class NoFlag:
        no_flag: Annotated[str, Option("no-flag")]

    with pytest.raises(ConfigurationError, match="Duplicate option 'no-flag'"):
        OptionSetter(AllTypes(), NoFlag())


def test_separator_in_name_fails():
    class Bad:
        x: Annotated[int, Option("a:b")]

    with pytest.raises(ConfigurationError, match="namespace separator"):
        OptionSetter(Bad())


def test_unsupported_field_type_fails_at_construction():
    class Bad:
        x: Annotated[List[List[int]], Option("nested")]

    with pytest.raises(ConfigurationError, match="is invalid"):
        OptionSetter(Bad())


def test_same_object_twice_is_indexed_once():
    obj = Other()
    setter = OptionSetter(obj, obj)
    setter.set_option_value("label", "x")
    assert obj.label == "x"
    assert len(setter.get_option_fields()) == 1


def test_same_class_instances_share_plain_keys():
    a, b = Other(), Other()
    setter = OptionSetter(a, b)
    setter.set_option_value("label", "both")
    assert a.label == b.label == "both"


def test_shared_key_failure_leaves_every_instance_untouched():
    a, b = AllTypes(), AllTypes()
    b.items = None
    setter = OptionSetter(a, b)
    with pytest.raises(ConfigurationError, match="no storage allocated"):
        setter.set_option_value("item", "x")
    assert a.items == []

    b.items = []
    b.props = None
    with pytest.raises(ConfigurationError, match="no storage allocated"):
        setter.set_option_map_value("prop", "k", "1")
    assert a.props == {}


def test_shared_key_update_rule_failure_leaves_every_instance_untouched():
    a, b = Ruled(), Ruled()
    b.frozen = "set"
    setter = OptionSetter(a, b)
    with pytest.raises(ConfigurationError, match="immutable"):
        setter.set_option_value("frozen", "new")
    assert a.frozen is None
    assert b.frozen == "set"


def test_class_path_and_extra_namespaces():
    a, b = Other(), Other()
    setter = OptionSetter(a, b, namespaces={id(a): ["Other#1"], id(b): ["Other#2"]})
    setter.set_option_value("Other#2:label", "second")
    assert a.label == "other"
    assert b.label == "second"
    path = f"{Other.__module__}.{Other.__qualname__}"
    setter.set_option_value(f"{path}:label", "all")
    assert a.label == b.label == "all"


def test_option_class_alias():
    @option_class("short")
    class Aliased:
        value: Annotated[int, Option("value")]

        def __init__(self):
            self.value = 0

    obj = Aliased()
    setter = OptionSetter(obj)
    setter.set_option_value("short:value", "3")
    assert obj.value == 3


def test_alias_with_separator_is_rejected():
    with pytest.raises(ValueError):
        option_class("a:b")


##────────────────────────────────────────────────────────────────────────────}}}


def test_validate_mandatory():
    class Needs:
        target: Annotated[Optional[str], Option("target", mandatory=True)]
        hosts: Annotated[List[str], Option("host", mandatory=True)]

        def __init__(self):
            self.target = None
            self.hosts = []

    obj = Needs()
    setter = OptionSetter(obj)
    with pytest.raises(ConfigurationError, match="'target', 'host'"):
        setter.validate_mandatory()
    setter.set_option_value("target", "x")
    setter.set_option_value("host", "h")
    setter.validate_mandatory()
