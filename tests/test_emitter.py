"""Tests for the ChannelMultiplexer."""

from __future__ import annotations

import logging

from roswire.emitter import ChannelMultiplexer


def test_listeners_run_in_registration_order():
    mux = ChannelMultiplexer()
    calls = []
    mux.on("a", lambda v: calls.append(("first", v)))
    mux.on("a", lambda v: calls.append(("second", v)))

    assert mux.emit("a", 1) is True
    assert calls == [("first", 1), ("second", 1)]


def test_emit_without_listeners_returns_false():
    assert ChannelMultiplexer().emit("nobody") is False


def test_once_fires_a_single_time():
    mux = ChannelMultiplexer()
    calls = []
    mux.once("a", calls.append)

    mux.emit("a", 1)
    mux.emit("a", 2)

    assert calls == [1]
    assert mux.listener_count("a") == 0


def test_off_removes_one_registration():
    mux = ChannelMultiplexer()
    calls = []
    mux.on("a", calls.append)
    mux.on("a", calls.append)

    mux.off("a", calls.append)
    mux.emit("a", "x")

    assert calls == ["x"]


def test_off_unknown_callback_is_noop():
    mux = ChannelMultiplexer()
    mux.off("a", print)
    mux.on("a", print)
    mux.off("a", len)
    assert mux.listener_count("a") == 1


def test_no_listener_limit():
    mux = ChannelMultiplexer()
    hits = []
    for i in range(500):
        mux.on("close", lambda i=i: hits.append(i))
    mux.emit("close")
    assert len(hits) == 500


def test_failing_listener_does_not_stop_others(caplog):
    mux = ChannelMultiplexer()
    calls = []

    def boom(_):
        raise RuntimeError("listener bug")

    mux.on("a", boom)
    mux.on("a", calls.append)

    with caplog.at_level(logging.ERROR, logger="roswire.emitter"):
        mux.emit("a", 1)

    assert calls == [1]
    assert "Listener error on channel 'a'" in caplog.text


def test_once_listener_registered_during_emit_waits_for_next_emit():
    mux = ChannelMultiplexer()
    calls = []

    def rearm(value):
        calls.append(value)
        mux.once("a", rearm)

    mux.once("a", rearm)
    mux.emit("a", 1)
    mux.emit("a", 2)

    assert calls == [1, 2]


def test_remove_all_listeners():
    mux = ChannelMultiplexer()
    mux.on("a", print)
    mux.on("b", print)

    mux.remove_all_listeners("a")
    assert mux.channel_names() == ["b"]

    mux.remove_all_listeners()
    assert mux.channel_names() == []
