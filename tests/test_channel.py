from threading import Event, Thread

import pytest

from jobstream.services.jobs import Channel, ChannelClosedError, ChannelEmpty, JobCancelled, JobSink, MessageKind, StreamMessage


def _channel(capacity: int = 1) -> tuple[Channel, Event]:
    cancel_event = Event()
    return Channel(capacity=capacity, cancel_event=cancel_event, poll_seconds=0.01), cancel_event


def test_receive_preserves_send_order_and_ends_after_close() -> None:
    channel, _ = _channel(capacity=4)
    for text in ("1", "2", "3"):
        channel.send(StreamMessage.progress(text))
    channel.close()

    received = [channel.receive() for _ in range(3)]

    assert [message.text for message in received if message is not None] == ["1", "2", "3"]
    assert channel.receive() is None
    assert channel.receive() is None


def test_close_twice_raises() -> None:
    channel, _ = _channel()
    channel.close()

    with pytest.raises(ChannelClosedError):
        channel.close()


def test_send_after_close_raises() -> None:
    channel, _ = _channel(capacity=2)
    channel.close()

    with pytest.raises(ChannelClosedError):
        channel.send(StreamMessage.progress("late"))


def test_cancel_unblocks_sender_on_full_channel() -> None:
    channel, cancel_event = _channel(capacity=1)
    channel.send(StreamMessage.progress("fills the buffer"))
    outcome: list[str] = []

    def blocked_sender() -> None:
        try:
            channel.send(StreamMessage.progress("never delivered"))
        except JobCancelled:
            outcome.append("cancelled")

    sender = Thread(target=blocked_sender)
    sender.start()
    cancel_event.set()
    sender.join(timeout=2)

    assert not sender.is_alive()
    assert outcome == ["cancelled"]


def test_receive_returns_none_when_cancelled_and_empty() -> None:
    channel, cancel_event = _channel()
    cancel_event.set()

    assert channel.receive() is None


def test_sink_tags_messages_and_sleep_observes_cancel() -> None:
    channel, cancel_event = _channel(capacity=2)
    sink = JobSink(channel, job_name="test", cancel_event=cancel_event)

    sink.progress("step")
    sink.error("broken")

    first = channel.receive()
    second = channel.receive()
    assert first == StreamMessage(kind=MessageKind.PROGRESS, text="step")
    assert second == StreamMessage(kind=MessageKind.ERROR, text="broken")

    cancel_event.set()
    assert sink.cancelled
    with pytest.raises(JobCancelled):
        sink.sleep(5)


def test_receive_nowait_distinguishes_empty_from_closed() -> None:
    channel, _ = _channel(capacity=2)

    with pytest.raises(ChannelEmpty):
        channel.receive_nowait()

    channel.send(StreamMessage.progress("ready"))
    assert channel.receive_nowait() == StreamMessage.progress("ready")

    channel.close()
    assert channel.receive_nowait() is None
    assert channel.receive_nowait() is None


def test_receive_nowait_returns_none_once_cancelled() -> None:
    channel, cancel_event = _channel()
    cancel_event.set()

    assert channel.receive_nowait() is None
