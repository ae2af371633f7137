from types import SimpleNamespace

import pytest

from apigate.sd.register import get_register, reset_register
from apigate.sd.subscriber import SubscriberFunc, fixed_subscriber_factory


@pytest.fixture(autouse=True)
def clean_register():
    reset_register()
    yield
    reset_register()


def test_register_ok():
    def sf1(_cfg):
        return SubscriberFunc(lambda: ["one"])

    def sf2(_cfg):
        return SubscriberFunc(lambda: ["two", "three"])

    get_register().register("name1", sf1)
    get_register().register("name2", sf2)

    assert len(get_register().get("name1")(SimpleNamespace(sd="name1")).hosts()) == 1
    assert len(get_register().get("name2")(SimpleNamespace(sd="name2")).hosts()) == 2
    assert len(get_register().get("name2")(SimpleNamespace(sd="name2")).hosts()) == 2


def test_get_unknown_falls_back_to_fixed():
    factory = get_register().get("name")
    assert factory is fixed_subscriber_factory
    assert factory(SimpleNamespace(host=["name"])).hosts() == ["name"]


def test_get_errored_falls_back_to_fixed():
    get_register().register("errored", True)
    hosts = get_register().get("errored")(SimpleNamespace(sd="errored", host=["name"])).hosts()
    assert hosts == ["name"]


def test_reset_clears_entries():
    get_register().register("x", lambda cfg: SubscriberFunc(lambda: ["a", "b"]))
    fresh = reset_register()
    assert fresh is get_register()
    assert fresh.get("x") is fixed_subscriber_factory