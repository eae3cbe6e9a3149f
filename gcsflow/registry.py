from typing import Any, Dict, Mapping, Type, Union

from gcsflow.actions import GCSBucketDelete, GCSCopy, GCSMove
from gcsflow.actions._action import Action
from gcsflow.exceptions import UnknownPluginException
from gcsflow.sinks import GCSBatchSink

Plugin = Union[Action, GCSBatchSink]

PLUGINS: Dict[str, Type[Plugin]] = {
    plugin.name: plugin for plugin in (GCSBucketDelete, GCSCopy, GCSMove, GCSBatchSink)
}


def get_plugin_class(name: str) -> Type[Plugin]:
    try:
        return PLUGINS[name]
    except KeyError:
        raise UnknownPluginException(name, list(PLUGINS))


def create_plugin(name: str, properties: Mapping[str, Any]) -> Plugin:
    return get_plugin_class(name).from_properties(properties)
