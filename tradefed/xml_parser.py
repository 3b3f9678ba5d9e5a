# Copyright (c) 2025 Jean Disset
# MIT License - see LICENSE file for details.
import io
import logging
import xml.sax
import xml.sax.handler
import xml.sax.xmlreader
from typing import IO, Mapping, Optional, Protocol, Union

from tradefed.definition import CLASS_INDEX_SEPARATOR, ConfigurationDef
from tradefed.diagnostics import ConfigurationError, SourceContext, SourceLocation
from tradefed.option import NAMESPACE_SEPARATOR
from tradefed.roles import GLOBAL_ROLES, INVOCATION_ROLES, RoleInfo

logger = logging.getLogger(__name__)

CONFIGURATION_TAG = "configuration"
OBJECT_TAG = "object"
OPTION_TAG = "option"
INCLUDE_TAG = "include"


class ConfigDefLoader(Protocol):
    """resolves the configuration names used by <include> tags."""

    def get_configuration_def(self, name: str) -> ConfigurationDef:
        ...


class _ConfigHandler(xml.sax.handler.ContentHandler):
    def __init__(
        self,
        parser: "ConfigurationXmlParser",
        config_def: ConfigurationDef,
        name: str,
        file_path: Optional[str],
    ):
        super().__init__()
        self._parser = parser
        self._config_def = config_def
        self._name = name
        self._file_path = file_path or name
        self._locator = None
        self._current_object_tag: Optional[str] = None
        self._current_qualifier: Optional[str] = None
        self._builtin_roles: Optional[Mapping[str, RoleInfo]] = None

    def setDocumentLocator(self, locator):
        self._locator = locator

    def _location(self, tag: str) -> SourceLocation:
        return SourceLocation.from_locator(self._locator, file_path=self._file_path, element=tag)

    def _fail(self, tag: str, reason: str) -> ConfigurationError:
        return ConfigurationError(
            f"Failed to parse config xml '{self._name}'. Reason: {reason}",
            context=SourceContext.from_location(self._location(tag)),
        )

    def _required(self, tag: str, attrs, attr_name: str) -> str:
        value = attrs.get(attr_name)
        if value is None:
            raise self._fail(tag, f"Missing attribute '{attr_name}' for tag '{tag}'")
        return value

    def _builtin_table(self, tag: str) -> Optional[Mapping[str, RoleInfo]]:
        for table in (self._parser.invocation_roles, self._parser.global_roles):
            if tag in table:
                return table
        return None

    def _add_object(self, tag: str, type_name: str, class_name: str) -> None:
        index = self._config_def.add_config_object_def(type_name, class_name)
        self._current_object_tag = tag
        self._current_qualifier = f"{class_name}{CLASS_INDEX_SEPARATOR}{index}"

    def startElement(self, tag, attrs):
        if tag == CONFIGURATION_TAG:
            description = attrs.get("description")
            if description is not None:
                self._config_def.description = description
        elif tag == OBJECT_TAG:
            type_name = self._required(tag, attrs, "type")
            class_name = self._required(tag, attrs, "class")
            self._add_object(tag, type_name, class_name)
        elif self._builtin_table(tag) is not None:
            table = self._builtin_table(tag)
            if self._builtin_roles is None:
                self._builtin_roles = table
            elif self._builtin_roles is not table:
                raise self._fail(
                    tag,
                    f"Tag '{tag}' belongs to a different set of built-in objects than the ones "
                    "already declared in this configuration",
                )
            self._add_object(tag, tag, self._required(tag, attrs, "class"))
        elif tag == OPTION_TAG:
            name = self._required(tag, attrs, "name")
            value = self._required(tag, attrs, "value")
            key = attrs.get("key")
            if self._current_qualifier is not None:
                name = f"{self._current_qualifier}{NAMESPACE_SEPARATOR}{name}"
            self._config_def.add_option_def(
                name, key, value, source=SourceContext.from_location(self._location(tag))
            )
        elif tag == INCLUDE_TAG:
            self._include(tag, self._required(tag, attrs, "name"))
        else:
            logger.warning(f"Unrecognized tag '{tag}' in configuration '{self._name}'")

    def endElement(self, tag):
        if tag == self._current_object_tag:
            self._current_object_tag = None
            self._current_qualifier = None

    def _include(self, tag: str, include_name: str) -> None:
        loader = self._parser.loader
        location = self._location(tag)
        if loader is None:
            raise self._fail(tag, f"Cannot include '{include_name}': no configuration loader set")
        try:
            included = loader.get_configuration_def(include_name)
        except ConfigurationError as e:
            if e.context is not None:
                raise ConfigurationError(
                    e.message, context=e.context.with_parent(location), cause=e.__cause__
                ) from e.__cause__
            raise e.with_context(SourceContext.from_location(location)) from e.__cause__
        logger.debug(f"including '{include_name}' in '{self._name}'")
        self._config_def.include_config_def(included, included_from=location)


class ConfigurationXmlParser:
    """reads a configuration xml document into a ConfigurationDef.

    recognized tags:
      <configuration description="...">
      <object type="T" class="C">
      <ROLE class="C">               for every built-in role
      <option name="N" key="K" value="V">   qualified as C#n:N inside an object
      <include name="other">         merged in place through the loader
    """

    def __init__(
        self,
        loader: Optional[ConfigDefLoader] = None,
        invocation_roles: Mapping[str, RoleInfo] = INVOCATION_ROLES,
        global_roles: Mapping[str, RoleInfo] = GLOBAL_ROLES,
    ):
        self.loader = loader
        self.invocation_roles = invocation_roles
        self.global_roles = global_roles

    def parse(
        self,
        name: str,
        source: Union[str, bytes, IO[bytes]],
        config_def: Optional[ConfigurationDef] = None,
        file_path: Optional[str] = None,
    ) -> ConfigurationDef:
        """parses `source` (xml text, bytes or a binary file object).

        Args:
            name: name of the configuration, used in errors.
            source: the document.
            config_def: definition to fill. a new one is created when None.
            file_path: where the document comes from, for error locations.
        """
        if config_def is None:
            config_def = ConfigurationDef(name)
        if isinstance(source, str):
            source = source.encode("utf-8")
        stream = io.BytesIO(source) if isinstance(source, bytes) else source

        input_source = xml.sax.xmlreader.InputSource(file_path or name)
        input_source.setByteStream(stream)

        reader = xml.sax.make_parser()
        reader.setFeature(xml.sax.handler.feature_namespaces, False)
        reader.setFeature(xml.sax.handler.feature_external_ges, False)
        reader.setContentHandler(_ConfigHandler(self, config_def, name, file_path))
        try:
            reader.parse(input_source)
        except xml.sax.SAXParseException as e:
            loc = SourceLocation(
                file_path=file_path or name,
                line=e.getLineNumber() or 0,
                column=(e.getColumnNumber() or 0) + 1,
            )
            raise ConfigurationError(
                f"Failed to parse config xml '{name}'. Reason: {e.getMessage()}",
                context=SourceContext.from_location(loc),
                cause=e,
            ) from e
        logger.debug(f"parsed configuration '{name}': {config_def}")
        return config_def
