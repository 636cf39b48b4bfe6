from tests.fakes.fake_store import FakeGraphStore, GatedGraphStore
from tests.fakes.records import TENANT, make_entity, make_relationship

__all__ = ["FakeGraphStore", "GatedGraphStore", "TENANT", "make_entity", "make_relationship"]
