# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
from typing import Annotated

import pytest
from rich.console import Console

from tradefed.configuration import GlobalConfiguration
from tradefed.diagnostics import ConfigurationError
from tradefed.factory import ConfigurationFactory
from tradefed.interfaces import RemoteTest
from tradefed.option import Option
from tradefed.options import DeviceSelectionOptions
from tradefed.registry import default_registry
from tradefed.stubs import StdoutLogger, StubBuildProvider, StubTest


class FooTest(RemoteTest):
    foo: Annotated[int, Option("foo")]

    def __init__(self):
        self.foo = 0

    def run(self, listener):
        pass


@pytest.fixture
def factory():
    registry = default_registry()
    registry.register_classes([FooTest])
    return ConfigurationFactory(registry=registry)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("TRADEFED_CONFIG_PATH", str(tmp_path))
    return tmp_path


def write(directory, name, content):
    path = directory / f"{name}.xml"
    path.write_text(content)
    return path


## {{{                      --     bundled configs     --


def test_bundled_configuration_names(factory):
    names = factory.bundled_configuration_names()
    assert {"empty", "global", "stub"} <= set(names)


def test_stub_configuration(factory):
    config = factory.create_configuration("stub")
    assert config.name == "stub"
    assert isinstance(config.build_provider, StubBuildProvider)
    assert config.build_provider.build_name == "stub-build"
    assert isinstance(config.log_output, StdoutLogger)
    assert [type(t) for t in config.tests] == [StubTest]
    assert config.device_selection_options.null_device_requested is True


def test_empty_configuration(factory):
    config = factory.create_configuration("empty")
    assert config.description == "Empty configuration"
    assert isinstance(config.build_provider, StubBuildProvider)


def test_global_configuration(factory):
    config = factory.create_global_configuration(args=["--serial", "abc"])
    assert isinstance(config, GlobalConfiguration)
    assert isinstance(config.device_requirements, DeviceSelectionOptions)
    assert config.device_requirements.serials == ["abc"]


def test_print_help(factory):
    console = Console(record=True, width=120)
    factory.print_help(console)
    text = console.export_text()
    assert "Available configurations include:" in text
    assert "stub: Runs a stub test against a stub build" in text


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                         --     lookup     --


def test_load_from_file_path(factory, tmp_path):
    path = write(tmp_path, "mine", '<configuration><test class="FooTest" /></configuration>')
    config = factory.create_configuration(str(path))
    assert [type(t) for t in config.tests] == [FooTest]


def test_load_from_search_path_without_extension(factory, config_dir):
    write(config_dir, "searched", '<configuration description="found it" />')
    assert factory.get_configuration_def("searched").description == "found it"


def test_not_found(factory, config_dir):
    with pytest.raises(ConfigurationError, match="Could not find configuration 'nowhere'"):
        factory.get_configuration_def("nowhere")


def test_definitions_are_cached(factory, config_dir):
    path = write(config_dir, "cached", '<configuration description="v1" />')
    first = factory.get_configuration_def("cached")
    path.write_text('<configuration description="v2" />')
    assert factory.get_configuration_def("cached") is first
    factory.clear_cache()
    assert factory.get_configuration_def("cached").description == "v2"


def test_configurations_from_one_definition_are_independent(factory, config_dir):
    write(config_dir, "foo", '<configuration><test class="FooTest" /><option name="foo" value="3" /></configuration>')
    first = factory.create_configuration("foo")
    second = factory.create_configuration("foo")
    assert first.tests[0].foo == second.tests[0].foo == 3
    first.tests[0].foo = 4
    assert second.tests[0].foo == 3


def test_parse_error_points_at_the_file(factory, config_dir):
    path = write(config_dir, "broken", '<configuration>\n<test />\n</configuration>')
    with pytest.raises(ConfigurationError, match="Missing attribute 'class'") as excinfo:
        factory.get_configuration_def("broken")
    assert excinfo.value.context.file_path == path.resolve().as_posix()
    assert excinfo.value.context.line == 2


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                         --     include     --


def test_include_last_assignment_wins(factory, config_dir):
    write(config_dir, "base", '<configuration><option name="foo" value="2" /></configuration>')
    write(
        config_dir,
        "top",
        '<configuration><test class="FooTest" />'
        '<option name="foo" value="1" /><include name="base" /></configuration>',
    )
    config = factory.create_configuration("top")
    assert config.tests[0].foo == 2


def test_included_objects_follow_own_objects(factory, config_dir):
    write(
        config_dir,
        "base",
        '<configuration><test class="FooTest"><option name="foo" value="7" /></test></configuration>',
    )
    write(
        config_dir,
        "top",
        '<configuration><test class="FooTest"><option name="foo" value="1" /></test>'
        '<include name="base" /></configuration>',
    )
    first, second = factory.create_configuration("top").tests
    assert (first.foo, second.foo) == (1, 7)


def test_include_cycle_is_detected(factory, config_dir):
    write(config_dir, "a", '<configuration><include name="b" /></configuration>')
    write(config_dir, "b", '<configuration><include name="a" /></configuration>')
    with pytest.raises(ConfigurationError, match="Circular configuration include: a -> b -> a"):
        factory.get_configuration_def("a")
    # nothing is left half loaded
    with pytest.raises(ConfigurationError, match="Circular"):
        factory.get_configuration_def("b")


def test_self_include_is_detected(factory, config_dir):
    write(config_dir, "loop", '<configuration><include name="loop" /></configuration>')
    with pytest.raises(ConfigurationError, match="loop -> loop"):
        factory.get_configuration_def("loop")


def test_same_config_included_twice(factory, config_dir):
    write(config_dir, "part", '<configuration><test class="FooTest" /></configuration>')
    write(
        config_dir,
        "whole",
        '<configuration><include name="part" /><include name="part" /></configuration>',
    )
    assert [type(t) for t in factory.create_configuration("whole").tests] == [FooTest, FooTest]


##────────────────────────────────────────────────────────────────────────────}}}

## {{{                       --     command line     --


def test_create_configuration_from_args(factory, config_dir):
    write(config_dir, "foo", '<configuration><test class="FooTest" /></configuration>')
    config = factory.create_configuration_from_args(["--foo", "5", "--FooTest#1:foo", "6", "foo"])
    assert config.tests[0].foo == 6


def test_create_configuration_from_no_args(factory):
    with pytest.raises(ConfigurationError, match="Configuration to run was not specified"):
        factory.create_configuration_from_args([])


def test_create_configuration_from_args_with_leftovers(factory):
    with pytest.raises(ConfigurationError, match="Unprocessed arguments"):
        factory.create_configuration_from_args(["stray", "stub"])


##────────────────────────────────────────────────────────────────────────────}}}
