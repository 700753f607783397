from wsession.network.buffer import SendBuffer


def test_flush_preserves_insertion_order():
    buffer = SendBuffer()
    for payload in ["a", b"b", "a"]:
        buffer.append(payload)
    sent = []

    assert buffer.flush(lambda payload: sent.append(payload) is None) == 3

    assert sent == ["a", b"b", "a"]
    assert len(buffer) == 0


def test_flush_stops_at_first_failure():
    buffer = SendBuffer()
    for payload in ["one", "two", "three"]:
        buffer.append(payload)
    sent = []

    def _transmit(payload):
        if payload == "two":
            return False
        sent.append(payload)
        return True

    assert buffer.flush(_transmit) == 1
    assert sent == ["one"]
    assert list(buffer) == ["two", "three"]


def test_flush_empty_buffer_sends_nothing():
    buffer = SendBuffer()

    assert buffer.flush(lambda payload: True) == 0
