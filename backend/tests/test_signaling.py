"""Tests for the signaling broker."""
import pytest


class TestCallUser:
    @pytest.mark.asyncio
    async def test_online_target_gets_one_incoming_call(self, core):
        a, sock_a = await core.connect("u1")
        _, sock_b = await core.connect("u2")
        sock_a.sent.clear()
        sock_b.sent.clear()
        signal = {"type": "offer", "sdp": "v=0"}

        assert await core.broker.call_user(a, {"to": "u2", "from": "u1", "signal": signal})

        assert sock_b.sent == [
            {"event": "incoming-call", "data": {"from": "u1", "signal": signal}}
        ]
        assert sock_a.sent == []

    @pytest.mark.asyncio
    async def test_offline_target_is_dropped_silently(self, core):
        a, sock_a = await core.connect("u1")
        _, sock_b = await core.connect("u3")
        sock_a.sent.clear()
        sock_b.sent.clear()

        assert not await core.broker.call_user(a, {"to": "u2", "from": "u1", "signal": {}})

        assert sock_a.sent == []
        assert sock_b.sent == []

    @pytest.mark.asyncio
    async def test_from_defaults_to_sender(self, core):
        a, _ = await core.connect("u1")
        _, sock_b = await core.connect("u2")
        await core.broker.call_user(a, {"to": "u2", "signal": "sdp"})
        assert sock_b.events("incoming-call") == [{"from": "u1", "signal": "sdp"}]

    @pytest.mark.asyncio
    async def test_routes_to_latest_connection(self, core):
        a, _ = await core.connect("u1")
        _, old_sock = await core.connect("u2")
        _, new_sock = await core.connect("u2")

        await core.broker.call_user(a, {"to": "u2", "from": "u1", "signal": "sdp"})

        assert old_sock.events("incoming-call") == []
        assert new_sock.events("incoming-call") == [{"from": "u1", "signal": "sdp"}]

    @pytest.mark.asyncio
    async def test_missing_target_is_rejected(self, core):
        a, sock_a = await core.connect("u1")
        sock_a.sent.clear()
        assert not await core.broker.call_user(a, {"from": "u1", "signal": "sdp"})
        assert sock_a.names() == ["error"]


class TestAnswerMade:
    @pytest.mark.asyncio
    async def test_caller_gets_call_accepted(self, core):
        _, sock_a = await core.connect("u1")
        b, _ = await core.connect("u2")
        answer = {"type": "answer", "sdp": "v=0"}

        assert await core.broker.answer_made(b, {"to": "u1", "from": "u2", "signal": answer})

        assert sock_a.events("call-accepted") == [{"from": "u2", "signal": answer}]

    @pytest.mark.asyncio
    async def test_caller_gone(self, core):
        a, _ = await core.connect("u1")
        b, sock_b = await core.connect("u2")
        await core.hub.close(a)
        sock_b.sent.clear()

        assert not await core.broker.answer_made(b, {"to": "u1", "from": "u2", "signal": "x"})
        assert sock_b.sent == []


class TestIceCandidate:
    @pytest.mark.asyncio
    async def test_from_is_senders_registered_id(self, core):
        a, _ = await core.connect("u1")
        _, sock_b = await core.connect("u2")
        candidate = {"candidate": "candidate:1 1 UDP 2122 10.0.0.1 5000 typ host"}

        assert await core.broker.ice_candidate(a, {"to": "u2", "candidate": candidate})

        assert sock_b.events("ice-candidate") == [{"from": "u1", "candidate": candidate}]

    @pytest.mark.asyncio
    async def test_superseded_tab_still_signs_as_its_user(self, core):
        old, _ = await core.connect("u1")
        await core.connect("u1")
        _, sock_b = await core.connect("u2")

        assert await core.broker.ice_candidate(old, {"to": "u2", "candidate": {"c": 1}})

        assert sock_b.events("ice-candidate") == [{"from": "u1", "candidate": {"c": 1}}]

    @pytest.mark.asyncio
    async def test_offline_target(self, core):
        a, sock_a = await core.connect("u1")
        sock_a.sent.clear()
        assert not await core.broker.ice_candidate(a, {"to": "nobody", "candidate": {}})
        assert sock_a.sent == []

    @pytest.mark.asyncio
    async def test_missing_candidate_is_rejected(self, core):
        a, sock_a = await core.connect("u1")
        await core.connect("u2")
        sock_a.sent.clear()
        assert not await core.broker.ice_candidate(a, {"to": "u2"})
        assert sock_a.names() == ["error"]
