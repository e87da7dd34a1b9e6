"""
Tests for the Store: dispatch pipeline, state swap and subscriber registry.
"""

import pytest
from immutables import Map

from conftest import Counter, counter_reducer
from pyjedux import Action, ConfigurationError, ErrorHandler, Store, StoreOptions, create_store


class TestCounterScenario:
    def test_increment(self, counter_store):
        assert counter_store.dispatch(Action(Counter.INCREMENT)) == Map(count=1)

    def test_plus_after_increment(self, counter_store):
        counter_store.dispatch(Action(Counter.INCREMENT))

        assert counter_store.dispatch(Action(Counter.PLUS, 10)) == Map(count=11)

    def test_unknown_keeps_state_and_still_notifies(self, counter_store, notifications):
        counter_store.dispatch(Action(Counter.INCREMENT))
        counter_store.dispatch(Action(Counter.PLUS, 10))
        before = counter_store.get_state()

        after = counter_store.dispatch(Action(Counter.UNKNOWN))

        assert after is before
        assert after == Map(count=11)
        assert notifications == [1, 11, 11]


class TestStateVisibility:
    def test_dispatch_returns_current_state(self, counter_store):
        result = counter_store.dispatch(Action(Counter.PLUS, 3))

        assert result is counter_store.get_state()
        assert result is counter_store.state

    def test_initial_state_is_returned_untouched(self, initial_state):
        store = create_store(counter_reducer, initial_state)

        assert store.get_state() is initial_state

    def test_reducer_receives_action_then_state(self, initial_state):
        seen = []

        def reducer(action, state):
            seen.append((action, state))
            return state

        store = Store(reducer, initial_state)
        action = Action(Counter.INCREMENT)
        store.dispatch(action)

        assert seen == [(action, initial_state)]


class TestSubscribe:
    def test_subscribers_called_in_registration_order(self, counter_store):
        calls = []
        counter_store.subscribe(lambda: calls.append("first"))
        counter_store.subscribe(lambda: calls.append("second"))

        counter_store.dispatch(Action(Counter.INCREMENT))

        assert calls == ["first", "second"]

    def test_subscriber_sees_updated_state(self, counter_store):
        seen = []
        counter_store.subscribe(lambda: seen.append(counter_store.get_state()["count"]))

        counter_store.dispatch(Action(Counter.PLUS, 5))

        assert seen == [5]

    def test_unsubscribe_stops_notifications(self, counter_store):
        calls = []
        unsubscribe = counter_store.subscribe(lambda: calls.append(1))
        counter_store.dispatch(Action(Counter.INCREMENT))

        unsubscribe()
        counter_store.dispatch(Action(Counter.INCREMENT))

        assert calls == [1]

    def test_unsubscribe_twice_is_noop(self, counter_store):
        calls = []
        unsubscribe = counter_store.subscribe(lambda: calls.append(1))

        unsubscribe()
        unsubscribe()
        counter_store.dispatch(Action(Counter.INCREMENT))

        assert calls == []

    def test_same_callback_twice_has_independent_handles(self, counter_store):
        calls = []

        def callback():
            calls.append(1)

        first = counter_store.subscribe(callback)
        counter_store.subscribe(callback)
        counter_store.dispatch(Action(Counter.INCREMENT))
        assert len(calls) == 2

        first()
        first()
        counter_store.dispatch(Action(Counter.INCREMENT))

        assert len(calls) == 3

    def test_unsubscribe_during_notification_skips_removed_subscriber(self, counter_store):
        calls = []
        handles = {}

        def first():
            calls.append("first")
            handles["second"]()

        counter_store.subscribe(first)
        handles["second"] = counter_store.subscribe(lambda: calls.append("second"))
        counter_store.subscribe(lambda: calls.append("third"))

        counter_store.dispatch(Action(Counter.INCREMENT))

        assert calls == ["first", "third"]

    def test_subscriber_can_unsubscribe_itself(self, counter_store):
        calls = []
        handles = {}

        def once():
            calls.append("once")
            handles["once"]()

        handles["once"] = counter_store.subscribe(once)
        counter_store.subscribe(lambda: calls.append("other"))

        counter_store.dispatch(Action(Counter.INCREMENT))
        counter_store.dispatch(Action(Counter.INCREMENT))

        assert calls == ["once", "other", "other"]

    def test_subscribe_during_notification_applies_from_next_dispatch(self, counter_store):
        calls = []

        def register():
            counter_store.subscribe(lambda: calls.append("late"))

        unsubscribe = counter_store.subscribe(register)
        counter_store.dispatch(Action(Counter.INCREMENT))
        assert calls == []

        unsubscribe()
        counter_store.dispatch(Action(Counter.INCREMENT))
        assert calls == ["late"]


class TestErrors:
    def test_reducer_error_propagates_and_keeps_state(self, initial_state):
        def reducer(action, state):
            if action.type is Counter.UNKNOWN:
                raise ValueError("bad action")
            return counter_reducer(action, state)

        store = create_store(reducer, initial_state)
        calls = []
        store.subscribe(lambda: calls.append(1))
        store.dispatch(Action(Counter.INCREMENT))

        with pytest.raises(ValueError, match="bad action"):
            store.dispatch(Action(Counter.UNKNOWN))

        assert store.get_state() == Map(count=1)
        assert calls == [1]

    def test_reducer_error_skips_after_code_of_outer_middleware(self, initial_state):
        log = []

        def wrap(store, action, next):
            log.append("in")
            next(action)
            log.append("out")

        def reducer(action, state):
            raise RuntimeError("boom")

        store = create_store(reducer, initial_state, wrap)

        with pytest.raises(RuntimeError):
            store.dispatch(Action(Counter.INCREMENT))

        assert log == ["in"]

    def test_store_still_usable_after_reducer_error(self, initial_state):
        fail = [True]

        def reducer(action, state):
            if fail[0]:
                raise RuntimeError("boom")
            return counter_reducer(action, state)

        store = create_store(reducer, initial_state)
        with pytest.raises(RuntimeError):
            store.dispatch(Action(Counter.INCREMENT))

        fail[0] = False

        assert store.dispatch(Action(Counter.INCREMENT)) == Map(count=1)

    def test_subscriber_error_aborts_remaining_notifications(self, counter_store):
        calls = []

        def broken():
            raise RuntimeError("subscriber failed")

        counter_store.subscribe(broken)
        counter_store.subscribe(lambda: calls.append("later"))

        with pytest.raises(RuntimeError, match="subscriber failed"):
            counter_store.dispatch(Action(Counter.INCREMENT))

        assert calls == []
        assert counter_store.get_state() == Map(count=1)

    def test_report_mode_keeps_notifying(self, initial_state):
        handler = ErrorHandler(log_to_console=False)
        reported = []
        handler.register_handler(lambda error, context: reported.append((error, context)))
        store = create_store(
            counter_reducer,
            initial_state,
            options={"name": "counter", "subscriber_errors": "report"},
            error_handler=handler,
        )
        calls = []

        def broken():
            raise RuntimeError("subscriber failed")

        store.subscribe(broken)
        store.subscribe(lambda: calls.append("later"))

        assert store.dispatch(Action(Counter.INCREMENT)) == Map(count=1)
        assert calls == ["later"]
        assert len(reported) == 1
        error, context = reported[0]
        assert isinstance(error, RuntimeError)
        assert context["store"] == "counter"

    def test_report_mode_survives_failing_error_handler(self, initial_state):
        handler = ErrorHandler(log_to_console=False)

        def broken_handler(error, context):
            raise RuntimeError("handler broke")

        handler.register_handler(broken_handler)
        store = create_store(
            counter_reducer,
            initial_state,
            options={"subscriber_errors": "report"},
            error_handler=handler,
        )
        calls = []
        store.subscribe(lambda: 1 / 0)
        store.subscribe(lambda: calls.append("later"))

        assert store.dispatch(Action(Counter.INCREMENT)) == Map(count=1)
        assert calls == ["later"]


class TestOptions:
    def test_defaults(self, counter_store):
        assert counter_store.options == StoreOptions()
        assert counter_store.options.skip_unchanged is False
        assert counter_store.options.subscriber_errors == "propagate"

    def test_skip_unchanged(self, initial_state):
        store = create_store(counter_reducer, initial_state, options=StoreOptions(skip_unchanged=True))
        calls = []
        store.subscribe(lambda: calls.append(1))

        store.dispatch(Action(Counter.UNKNOWN))
        store.dispatch(Action(Counter.INCREMENT))

        assert calls == [1]

    def test_invalid_policy_rejected(self, initial_state):
        with pytest.raises(ConfigurationError) as excinfo:
            create_store(counter_reducer, initial_state, options={"subscriber_errors": "ignore"})

        assert excinfo.value.component == "Store"

    def test_unknown_option_rejected(self, initial_state):
        with pytest.raises(ConfigurationError):
            create_store(counter_reducer, initial_state, options={"time_travel": True})

    def test_options_are_frozen(self):
        options = StoreOptions()

        with pytest.raises(ValueError):
            options.name = "other"


class TestSelect:
    def test_emits_current_value_then_changes(self, counter_store):
        values = []
        counter_store.select(lambda state: state["count"]).subscribe(on_next=values.append)

        counter_store.dispatch(Action(Counter.INCREMENT))
        counter_store.dispatch(Action(Counter.UNKNOWN))
        counter_store.dispatch(Action(Counter.PLUS, 2))

        assert values == [0, 1, 3]

    def test_without_selector_emits_whole_state(self, counter_store):
        values = []
        counter_store.select().subscribe(on_next=values.append)

        counter_store.dispatch(Action(Counter.INCREMENT))

        assert values == [Map(count=0), Map(count=1)]

    def test_dispose_unsubscribes_from_store(self, counter_store):
        values = []
        subscription = counter_store.select(lambda state: state["count"]).subscribe(on_next=values.append)
        counter_store.dispatch(Action(Counter.INCREMENT))

        subscription.dispose()
        counter_store.dispatch(Action(Counter.INCREMENT))

        assert values == [0, 1]

    def test_selector_error_goes_to_observer(self, counter_store):
        errors = []

        def selector(state):
            if state["count"] > 0:
                raise KeyError("missing")
            return state["count"]

        counter_store.select(selector).subscribe(on_next=lambda _: None, on_error=errors.append)
        counter_store.dispatch(Action(Counter.INCREMENT))
        counter_store.dispatch(Action(Counter.INCREMENT))

        assert len(errors) == 1
        assert isinstance(errors[0], KeyError)


def test_repr_names_store(counter_store):
    assert "store" in repr(counter_store)
