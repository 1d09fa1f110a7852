"""Tests for the Discord notifier and appending to living messages."""

import unittest
from unittest import mock

from sloth_watch.config import DiscordConfig
from sloth_watch.notifier import DiscordNotifier, NotifierError, append_line, message_text
from tests.fakes import FakeNotifier


def _response(status_code, payload=None):
    resp = mock.Mock(status_code=status_code, text=str(payload))
    resp.json.return_value = payload
    return resp


class TestAppendLine(unittest.TestCase):
    def setUp(self):
        self.notifier = FakeNotifier()

    def test_appends_to_newest_matching_message(self):
        self.notifier.notify("alerts", "Alice was slain by an orc.")
        self.notifier.notify("alerts", "Bob was slain by a troll.")
        self.notifier.notify("alerts", "Alice was slain by a dragon.")

        self.assertTrue(append_line(self.notifier, "alerts", "Alice was slain by", "Raised by Cleric.", "death of Alice"))
        self.assertEqual(
            self.notifier.messages("alerts"),
            [
                "Alice was slain by an orc.",
                "Bob was slain by a troll.",
                "Alice was slain by a dragon.\nRaised by Cleric.",
            ],
        )

    def test_missing_message_is_not_an_error(self):
        self.notifier.notify("alerts", "Bob was slain by a troll.")
        with self.assertLogs("sloth_watch.notifier", level="WARNING") as logs:
            found = append_line(self.notifier, "alerts", "Alice was slain by", "Shocked.", "death of Alice")

        self.assertFalse(found)
        self.assertIn("could not find message for death of Alice", logs.output[0])
        self.assertEqual(self.notifier.messages("alerts"), ["Bob was slain by a troll."])

    def test_search_window(self):
        self.notifier.notify("groups", "Alice started group 'x'.")
        self.notifier.notify("groups", "Bob started group 'y'.")
        self.assertFalse(append_line(self.notifier, "groups", "Alice started", "line", "group of Alice", limit=1))


class TestDiscordNotifier(unittest.TestCase):
    def setUp(self):
        config = DiscordConfig(bot_token="token", channels={"groups": "100"}, api_base="https://discord.test/api")
        self.notifier = DiscordNotifier(config=config, retries=3, backoff=0.1)
        self.request = mock.patch.object(self.notifier.session, "request").start()
        self.sleep = mock.patch("sloth_watch.notifier.time.sleep").start()
        self.addCleanup(mock.patch.stopall)

    def test_rate_limit_is_retried_after_the_given_delay(self):
        self.request.side_effect = [_response(429, {"retry_after": 0.5}), _response(200, {"id": "42"})]

        handle = self.notifier.notify("groups", "Alice started group 'x'.")

        self.assertEqual((handle.channel_id, handle.message_id), ("100", "42"))
        self.sleep.assert_called_once_with(0.5)
        method, url = self.request.call_args.args
        self.assertEqual((method, url), ("POST", "https://discord.test/api/channels/100/messages"))
        self.assertEqual(
            self.request.call_args.kwargs["json"]["embeds"][0]["description"],
            "Alice started group 'x'.",
        )

    def test_client_error_is_not_retried(self):
        self.request.return_value = _response(403, {"message": "Missing Access"})
        with self.assertRaises(NotifierError):
            self.notifier.notify("groups", "text")
        self.assertEqual(self.request.call_count, 1)

    def test_server_errors_give_up_after_retries(self):
        self.request.return_value = _response(502, {})
        with self.assertRaises(NotifierError):
            self.notifier.notify("groups", "text")
        self.assertEqual(self.request.call_count, 3)

    def test_unknown_channel(self):
        with self.assertRaises(NotifierError):
            self.notifier.notify("forum", "text")
        self.request.assert_not_called()

    def test_find_only_searches_own_messages(self):
        self.request.side_effect = [
            _response(200, [
                {"id": "3", "channel_id": "100", "author": {"id": "someone"}, "content": "Alice started raiding"},
                {
                    "id": "2",
                    "channel_id": "100",
                    "author": {"id": "bot"},
                    "embeds": [{"description": "Alice started group 'x'."}],
                },
            ]),
            _response(200, {"id": "bot"}),
        ]

        handle = self.notifier.find_recent_notification("groups", lambda text: "Alice started" in text, limit=5)

        self.assertEqual((handle.message_id, handle.text), ("2", "Alice started group 'x'."))
        self.assertEqual(self.request.call_args_list[0].kwargs["params"], {"limit": 5})

    def test_message_text(self):
        self.assertEqual(message_text({"embeds": [{"description": "a"}], "content": "b"}), "a")
        self.assertEqual(message_text({"embeds": [], "content": "b"}), "b")
        self.assertEqual(message_text({}), "")


if __name__ == "__main__":
    unittest.main()
