"""Tests for the MedFlow assistant."""

import threading

import pytest

import chatbot
from chatbot import DEFAULT_RESPONSE, GREETING, RULES, ChatLog, respond


def reply_of(name):
    return next(rule.response for rule in RULES if rule.name == name)


class TestRespond:
    @pytest.mark.parametrize(
        "message",
        ["prescription", "Where do I send a PRESCRIPTION?", "refill my Prescriptions please"],
    )
    def test_prescription_hint_regardless_of_case(self, message):
        assert respond(message) == reply_of("prescriptions")

    @pytest.mark.parametrize("message", ["Where is the cafeteria?", "", "42"])
    def test_default_when_nothing_matches(self, message):
        assert respond(message) == DEFAULT_RESPONSE

    def test_rule_order_is_first_match(self):
        # "doctor" is listed before "how", so it wins.
        assert respond("how do I use the doctor portal") == reply_of("doctor")
        assert respond("How does this work?") == reply_of("help")

    def test_patient_outranks_prescription(self):
        assert respond("patient prescription history") == reply_of("patients")

    def test_substring_matching(self):
        assert respond("Thanks a lot") == reply_of("thanks")
        assert respond("hi there") == reply_of("greeting")
        assert respond("what is the workflow") == reply_of("status")
        assert respond("pharmacy hours") == reply_of("pharmacy")

    def test_help_reply_is_multiline(self):
        assert "\n• Lab test management\n" in reply_of("help")


class TestChatLog:
    def test_opens_with_greeting(self):
        log = ChatLog(schedule=lambda delay, cb: None)
        assert [m["text"] for m in log.messages] == [GREETING]
        assert not log.typing

    def test_reply_arrives_after_scheduled_delay(self):
        scheduled = []
        log = ChatLog(delay=0.5, schedule=lambda delay, cb: scheduled.append((delay, cb)))

        sent = log.send("Need help")

        assert sent["sender"] == "user"
        assert log.messages[-1] == sent
        assert log.typing
        assert scheduled[0][0] == 0.5

        scheduled[0][1]()

        last = log.messages[-1]
        assert last["sender"] == "bot"
        assert last["text"] == reply_of("help")
        assert not log.typing

    def test_blank_message_is_rejected(self):
        log = ChatLog(schedule=lambda delay, cb: None)
        with pytest.raises(ValueError):
            log.send("   ")
        assert len(log.messages) == 1

    def test_timer_scheduler_runs_callback(self):
        done = threading.Event()
        chatbot.timer_scheduler(0, done.set)
        assert done.wait(timeout=2)


class TestChatRegistry:
    def test_close_evicts_conversation(self):
        reg = chatbot.ChatRegistry(schedule=lambda delay, cb: None)
        log = reg.open()

        assert reg.close(log.id)
        assert reg.get(log.id) is None
        assert not reg.close(log.id)

    def test_oldest_conversations_are_evicted_past_the_cap(self):
        reg = chatbot.ChatRegistry(schedule=lambda delay, cb: None, max_conversations=3)
        logs = [reg.open() for _ in range(1000)]

        assert len(reg) == 3
        assert reg.get(logs[0].id) is None
        assert [reg.get(log.id) for log in logs[-3:]] == logs[-3:]


class TestChatEndpoints:
    def test_stateless_reply(self, client):
        res = client.post("/chat", json={"text": "Lab results?"})
        assert res.status_code == 200
        assert res.json()["reply"] == reply_of("lab")

    def test_conversation_round_trip(self, client):
        conv = client.post("/chat/conversations").json()
        assert conv["messages"][0]["text"] == GREETING

        res = client.post(f"/chat/conversations/{conv['id']}/messages", json={"text": "hello"})
        assert res.status_code == 202
        assert res.json()["sender"] == "user"

        conv = client.get(f"/chat/conversations/{conv['id']}").json()
        assert [m["sender"] for m in conv["messages"]] == ["bot", "user", "bot"]
        assert conv["messages"][-1]["text"] == reply_of("greeting")
        assert conv["typing"] is False

    def test_blank_message_gives_422(self, client):
        conv = client.post("/chat/conversations").json()
        res = client.post(f"/chat/conversations/{conv['id']}/messages", json={"text": " "})
        assert res.status_code == 422

    def test_unknown_conversation_404(self, client):
        assert client.get("/chat/conversations/nope").status_code == 404

    def test_delete_closes_conversation(self, client, chat_registry):
        conv = client.post("/chat/conversations").json()

        assert client.delete(f"/chat/conversations/{conv['id']}").status_code == 200
        assert len(chat_registry) == 0
        assert client.get(f"/chat/conversations/{conv['id']}").status_code == 404
        assert client.delete(f"/chat/conversations/{conv['id']}").status_code == 404
