import pytest

from tracereplay.events import Observers
from tracereplay.ops import OpJmp, OpReg, OpStep


def test_emit_calls_handlers_in_subscription_order():
    observers = Observers()
    seen = []
    observers.subscribe(lambda op, effects: seen.append(("a", op, effects)))
    observers.subscribe(lambda op, effects: seen.append(("b", op, effects)))
    observers.emit(OpStep(4), (OpReg(0, 1),))
    assert seen == [
        ("a", OpStep(4), (OpReg(0, 1),)),
        ("b", OpStep(4), (OpReg(0, 1),)),
    ]
    assert len(observers) == 2


def test_unsubscribe_removes_only_that_handler():
    observers = Observers()
    seen = []
    token = observers.subscribe(lambda op, effects: seen.append("gone"))
    observers.subscribe(lambda op, effects: seen.append("kept"))
    observers.unsubscribe(token)
    observers.unsubscribe(token)
    observers.emit(OpJmp(0x10), ())
    assert seen == ["kept"]


def test_emit_with_no_handlers_is_silent():
    Observers().emit(OpJmp(0), ())


def test_handler_exception_stops_delivery():
    observers = Observers()
    seen = []

    def boom(op, effects):
        raise ValueError("bad handler")

    observers.subscribe(boom)
    observers.subscribe(lambda op, effects: seen.append(op))
    with pytest.raises(ValueError):
        observers.emit(OpJmp(0x10), ())
    assert seen == []
