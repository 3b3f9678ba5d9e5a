# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import collections.abc
import math
from enum import Enum
from pathlib import Path
from typing import Annotated, Dict, List, Mapping, Optional, Set, Tuple

import pytest

from tradefed.diagnostics import ConfigurationError
from tradefed.handlers import (
    BooleanHandler,
    DEFAULT_HANDLERS,
    EnumHandler,
    FileHandler,
    Handler,
    IntegerHandler,
    MapHandler,
    format_type_str,
    get_handler,
    is_container_type,
    is_map_type,
)
from tradefed.option import Option, OptionUpdateRule


class Color(Enum):
    RED = 1
    GREEN = 2


## {{{                      --     scalar handlers     --


@pytest.mark.parametrize("text", ["true", "TRUE", "yes", "Yes"])
def test_boolean_true_synonyms(text):
    assert BooleanHandler().translate(text) is True


@pytest.mark.parametrize("text", ["false", "False", "no", "NO"])
def test_boolean_false_synonyms(text):
    assert BooleanHandler().translate(text) is False


def test_boolean_rejects_other_text():
    assert BooleanHandler().translate("1") is None
    assert BooleanHandler().translate("") is None


def test_integer_handler():
    h = IntegerHandler()
    assert h.translate("42") == 42
    assert h.translate("-7") == -7
    assert h.translate("+3") == 3
    assert h.translate("4.2") is None
    assert h.translate("abc") is None


@pytest.mark.parametrize("text", [" 12 ", "12\n", "1_000", "", "-", "0x10", "١٢"])
def test_integer_handler_rejects_loose_forms(text):
    assert IntegerHandler().translate(text) is None


def test_float_handler():
    h = get_handler(float)
    assert h.translate("2.5") == 2.5
    assert h.translate("3") == 3.0
    assert h.translate("-.5e2") == -50.0
    assert h.translate("1E3") == 1000.0
    assert h.translate("-Infinity") == float("-inf")
    assert math.isnan(h.translate("NaN"))
    assert h.translate("nope") is None


@pytest.mark.parametrize("text", [" 2.5", "2.5 ", "1_000.5", "nan", "inf", "infinity", "1e", ".", "e3"])
def test_float_handler_rejects_loose_forms(text):
    assert get_handler(float).translate(text) is None


def test_string_handler_is_identity():
    assert get_handler(str).translate(" spaced ") == " spaced "


def test_file_handler_does_not_check_existence(tmp_path):
    missing = tmp_path / "not_there.txt"
    assert FileHandler().translate(str(missing)) == missing


def test_enum_handler_retries_uppercase():
    h = get_handler(Color)
    assert isinstance(h, EnumHandler)
    assert h.translate("RED") is Color.RED
    assert h.translate("green") is Color.GREEN
    assert h.translate("blue") is None


def test_only_boolean_handler_is_boolean():
    assert get_handler(bool).is_boolean
    for t in (int, float, str, Path, Color):
        assert not get_handler(t).is_boolean


def test_default_handlers_are_read_only():
    with pytest.raises(TypeError):
        DEFAULT_HANDLERS[bytes] = IntegerHandler()


def test_custom_handler_table():
    class Upper(Handler):
        def translate(self, text):
            return text.upper()

    class Tag:
        pass

    handlers = {**DEFAULT_HANDLERS, Tag: Upper()}
    assert get_handler(List[Tag], handlers).translate("a") == "A"
    with pytest.raises(ConfigurationError):
        get_handler(Tag)


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                     --     container handlers     --


@pytest.mark.parametrize(
    "declared",
    [
        List[int],
        list[int],
        Set[int],
        collections.abc.Collection[int],
        collections.abc.MutableSequence[int],
        collections.abc.MutableSet[int],
    ],
)
def test_containers_use_element_handler(declared):
    assert is_container_type(declared)
    assert not is_map_type(declared)
    assert get_handler(declared).translate("5") == 5


def test_optional_is_unwrapped():
    assert get_handler(Optional[int]).translate("3") == 3
    assert get_handler(Annotated[Optional[bool], Option("x")]).is_boolean


def test_map_handler():
    h = get_handler(Dict[str, int])
    assert isinstance(h, MapHandler)
    assert h.is_map
    assert h.translate_key("k") == "k"
    assert h.translate_value("12") == 12
    assert h.translate_value("x") is None
    assert is_map_type(Mapping[str, int])


@pytest.mark.parametrize("declared", [list, List, set, dict, Dict])
def test_raw_containers_are_rejected(declared):
    with pytest.raises(ConfigurationError, match="unsupported option type"):
        get_handler(declared)


@pytest.mark.parametrize("declared", [List[List[int]], Dict[str, List[int]], Set[Dict[str, int]]])
def test_nested_containers_are_rejected(declared):
    with pytest.raises(ConfigurationError, match="nested"):
        get_handler(declared)


def test_other_generics_are_rejected():
    with pytest.raises(ConfigurationError, match="unsupported option type"):
        get_handler(Tuple[int, int])


def test_unknown_type_is_rejected():
    class Opaque:
        pass

    with pytest.raises(ConfigurationError, match="unsupported option type"):
        get_handler(Opaque)


##────────────────────────────────────────────────────────────────────────────}}}


def test_format_type_str():
    assert format_type_str(int) == "int"
    assert format_type_str(Optional[str]) == "str"
    assert format_type_str(List[int]) == "List[int]"
    assert format_type_str(Set[str]) == "Set[str]"
    assert format_type_str(Dict[str, int]) == "Dict[str, int]"
    assert format_type_str(Path) == "file path"
    assert format_type_str(Color) == "Color (RED|GREEN)"


## {{{                       --     update rules     --


def test_update_rule_last():
    assert OptionUpdateRule.LAST.update("x", 1, 2) == 2


def test_update_rule_first_keeps_set_value():
    assert OptionUpdateRule.FIRST.update("x", None, 2) == 2
    assert OptionUpdateRule.FIRST.update("x", 1, 2) == 1


def test_update_rule_greatest_and_least():
    assert OptionUpdateRule.GREATEST.update("x", 5, 3) == 5
    assert OptionUpdateRule.GREATEST.update("x", 3, 5) == 5
    assert OptionUpdateRule.LEAST.update("x", 5, 3) == 3
    assert OptionUpdateRule.LEAST.update("x", 3, 5) == 3


def test_update_rule_uncomparable():
    with pytest.raises(ConfigurationError, match="failed to compare"):
        OptionUpdateRule.GREATEST.update("x", "a", 1)


def test_update_rule_immutable():
    assert OptionUpdateRule.IMMUTABLE.update("x", None, 1) == 1
    with pytest.raises(ConfigurationError, match="immutable"):
        OptionUpdateRule.IMMUTABLE.update("x", 1, 2)


def test_option_validation():
    with pytest.raises(ValueError):
        Option("")
    with pytest.raises(ValueError):
        Option("long", short_name="ab")


##────────────────────────────────────────────────────────────────────────────}}}
