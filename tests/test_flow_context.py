import logging
import time

import pytest

from gcpprovider.flow import FlowError, Graph
from gcpprovider.flow_context import (
    BasicFlowContext,
    TaskOption,
    dependencies,
    do_if,
    timeout,
)
from gcpprovider.whiteboard import Whiteboard

INTERVAL = 0.2


def test_option_builders():
    assert dependencies("a", "b") == TaskOption(dependencies=("a", "b"))
    assert timeout(3) == TaskOption(timeout=3)
    assert do_if(False) == TaskOption(do_if=False)


def test_log_from_context_outside_task():
    log = logging.getLogger("test.flowctx.outside")
    c = BasicFlowContext(log, Whiteboard())
    assert c.log_from_context() is log


def test_create_and_run_graph_flow(caplog):
    log = logging.getLogger("test.flowctx")
    caplog.set_level(logging.INFO, logger="test.flowctx")
    state = Whiteboard()
    flags = {"persistor_error": False, "task3_error": False}
    persisted = {"data": None, "count": 0}

    def persistor(data):
        if flags["persistor_error"]:
            raise RuntimeError("forced persistor error")
        persisted["data"] = dict(data)
        persisted["count"] += 1

    c = BasicFlowContext(log, state, persistor)
    c.persist_interval = INTERVAL

    # persists only if needed
    state.set("key1", "id1")
    c.persist_state(False)
    assert persisted["count"] == 1

    state.set("key2", "id2")
    c.persist_state(False)
    assert persisted["count"] == 1

    time.sleep(INTERVAL)
    c.persist_state(False)
    assert persisted["count"] == 2

    state.set("key2", "id2b")
    c.persist_state(True)
    assert persisted["count"] == 3
    assert persisted["data"] == {"key1": "id1", "key2": "id2b"}

    c.persist_state(True)
    assert persisted["count"] == 3

    # logs with context
    g = Graph("test")
    task1 = c.add_task(g, "task1", lambda: state.set("task1", "done"), do_if(False), do_if(True))

    def task2_fn():
        state.set("task2", "done")
        c.log_from_context().info("message from task2")

    task2 = c.add_task(g, "task2", task2_fn, dependencies(task1))

    def task3_fn():
        state.set("afterTask2", state.get("task2"))
        time.sleep(INTERVAL)
        state.set("task3", "done")
        if flags["task3_error"]:
            raise RuntimeError("forceTask3Error")

    c.add_task(g, "task3", task3_fn, do_if(True), dependencies(task2), do_if(True))

    f = g.compile()
    assert len(f) == 3

    flags["persistor_error"] = True
    with pytest.raises(FlowError) as info:
        f.run()
    assert 'flow "test" encountered task errors: [task "task3" failed: forced persistor error]' in str(info.value)

    assert state.get("task1") is None
    assert state.get("task2") == "done"
    assert state.get("afterTask2") == state.get("task2")
    assert state.get("task3") == "done"
    assert any(getattr(r, "task", None) == "task2" for r in caplog.records)
    assert any(
        r.getMessage() == "message from task2" and getattr(r, "task", None) == "task2"
        for r in caplog.records
    )

    flags["persistor_error"] = False
    flags["task3_error"] = True
    state.set("task1", "")
    with pytest.raises(FlowError) as info:
        f.run()
    assert 'flow "test" encountered task errors: [task "task3" failed: failed to task3: forceTask3Error]' in str(info.value)

    flags["task3_error"] = False
    state.set("task1", "")
    assert f.run() is None


def test_timeout_fails_task():
    c = BasicFlowContext(logging.getLogger("test.flowctx.timeout"), Whiteboard())
    g = Graph("slow")
    c.add_task(g, "slow", lambda: time.sleep(1.0), timeout(0.05))
    with pytest.raises(FlowError) as info:
        g.compile().run()
    name, exc = info.value.errors[0]
    assert name == "slow"
    assert str(exc).startswith("failed to slow: ")
    assert isinstance(exc.__cause__, TimeoutError)


def test_timeout_keeps_task_logger():
    seen = []
    c = BasicFlowContext(logging.getLogger("test.flowctx.tlog"), Whiteboard())
    g = Graph("g")
    c.add_task(g, "quick", lambda: seen.append(c.log_from_context().extra["task"]), timeout(5))
    g.compile().run()
    assert seen == ["quick"]


def test_task_error_with_persist_error_keeps_task_error():
    state = Whiteboard()

    def persistor(_):
        raise RuntimeError("persist failed")

    c = BasicFlowContext(logging.getLogger("test.flowctx.both"), state, persistor)

    def fn():
        state.set("k", "v")
        raise ValueError("bad")

    g = Graph("g")
    c.add_task(g, "work", fn)
    with pytest.raises(FlowError) as info:
        g.compile().run()
    assert str(info.value.errors[0][1]) == "failed to work: bad"