from enum import Enum, auto

import pytest
from immutables import Map

from pyjedux import Action, create_store


class Counter(Enum):
    INCREMENT = auto()
    PLUS = auto()
    UNKNOWN = auto()


def counter_reducer(action: Action, state: Map) -> Map:
    if action.type is Counter.INCREMENT:
        return state.set("count", state["count"] + 1)
    if action.type is Counter.PLUS:
        return state.set("count", state["count"] + action.payload)
    return state


@pytest.fixture
def initial_state() -> Map:
    return Map(count=0)


@pytest.fixture
def counter_store(initial_state):
    return create_store(counter_reducer, initial_state)


@pytest.fixture
def notifications(counter_store):
    calls = []
    counter_store.subscribe(lambda: calls.append(counter_store.get_state()["count"]))
    return calls
