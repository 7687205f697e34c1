"""
Provider registry.
Names the resource and data source types and builds them from a config.
"""

from sodium_item.config import SodiumConfig
from sodium_item.resource import EncryptedItemDataSource, EncryptedItemResource
from sodium_item.schema import RESOURCE_TYPE
from sodium_item.store import FileStateStore, StateStore

PROVIDER_TYPE = "sodium"


class SodiumProvider:
    """
    Builds resources and data sources that share one configuration.

    Args:
        version: Provider version string reported by metadata().
        config: Settings; read from the environment when omitted.
    """

    def __init__(self, version: str, config: SodiumConfig = None):
        self.version = version
        self.config = config or SodiumConfig.from_env()

    def metadata(self) -> dict:
        return {"type_name": PROVIDER_TYPE, "version": self.version}

    @property
    def type_name(self) -> str:
        return f"{PROVIDER_TYPE}_{RESOURCE_TYPE}"

    def resources(self) -> dict:
        return {self.type_name: self.new_resource}

    def data_sources(self) -> dict:
        return {self.type_name: self.new_data_source}

    def new_resource(self, store: StateStore = None) -> EncryptedItemResource:
        """Resource bound to store, or to a FileStateStore at config.state_dir."""
        if store is None:
            store = FileStateStore(self.config.state_dir)
        return EncryptedItemResource(store, policy=self.config.key_policy)

    def new_data_source(self) -> EncryptedItemDataSource:
        return EncryptedItemDataSource(policy=self.config.key_policy)
