"""
Unit tests for the control tag scanner and the transcript parser.

These tests verify tag detection on streamed output transcription, the
first-write-wins classification rules and turn flushing.
"""

import unittest

import pytest

from receptionist.bot.control_protocol import (
    ControlTag,
    ControlTagScanner,
    TranscriptParser,
    strip_control_tags,
)
from receptionist.models.call import (
    ActionCode,
    CallClassification,
    CallPhase,
    Role,
    TurnState,
)


class TestStripControlTags(unittest.TestCase):
    def test_strips_all_known_tags(self):
        text = "[CALL_TYPE: IMPORTANT] ধন্যবাদ, ট্রান্সফার করছি। [ACTION: TRANSFER]"
        self.assertEqual(strip_control_tags(text), "ধন্যবাদ, ট্রান্সফার করছি।")

    def test_strips_unknown_tag_values(self):
        self.assertEqual(strip_control_tags("ok [ACTION: DANCE]"), "ok")

    def test_keeps_other_brackets(self):
        self.assertEqual(strip_control_tags(" see [note] "), "see [note]")

    def test_tags_only_leaves_empty_text(self):
        self.assertEqual(strip_control_tags("[CALL_TYPE: SPAM] [ACTION: HANGUP]"), "")


class TestControlTagScanner(unittest.TestCase):
    def setUp(self):
        self.scanner = ControlTagScanner()

    def test_whole_tag_in_one_fragment(self):
        tags = self.scanner.feed("আমি দুঃখিত। [ACTION: HANGUP]")
        self.assertEqual(tags, [ControlTag("ACTION", "HANGUP")])
        self.assertEqual(self.scanner.pending, "")

    def test_tags_reported_in_text_order(self):
        tags = self.scanner.feed("[CALL_TYPE: SPAM] no thanks [ACTION: HANGUP]")
        self.assertEqual(
            tags, [ControlTag("CALL_TYPE", "SPAM"), ControlTag("ACTION", "HANGUP")]
        )

    def test_tag_split_across_fragments(self):
        self.assertEqual(self.scanner.feed("bye [ACTION: HA"), [])
        self.assertEqual(self.scanner.pending, "[ACTION: HA")
        self.assertEqual(self.scanner.feed("NGUP] "), [ControlTag("ACTION", "HANGUP")])
        self.assertEqual(self.scanner.pending, "")

    def test_tag_split_at_opening_bracket(self):
        self.assertEqual(self.scanner.feed("ok ["), [])
        self.assertEqual(self.scanner.feed("CALL_"), [])
        self.assertEqual(self.scanner.feed("TYPE: IMPORTANT]"), [ControlTag("CALL_TYPE", "IMPORTANT")])

    def test_tag_reported_once(self):
        self.assertEqual(len(self.scanner.feed("[ACTION: TRANSFER]")), 1)
        self.assertEqual(self.scanner.feed(" more text"), [])

    def test_non_tag_bracket_is_not_held_back(self):
        self.assertEqual(self.scanner.feed("see [not"), [])
        self.assertEqual(self.scanner.pending, "")

    def test_tag_after_unrelated_bracket(self):
        tags = self.scanner.feed("[x [ACTION: HANGUP]")
        self.assertEqual(tags, [ControlTag("ACTION", "HANGUP")])

    def test_split_tag_after_unclosed_bracket(self):
        self.assertEqual(self.scanner.feed("see [note [ACTION: HAN"), [])
        self.assertEqual(self.scanner.pending, "[ACTION: HAN")
        tags = self.scanner.feed("GUP] bye")
        self.assertEqual(tags, [ControlTag("ACTION", "HANGUP")])
        self.assertEqual(self.scanner.pending, "")

    def test_reset_drops_pending_tail(self):
        self.scanner.feed("[ACTION:")
        self.scanner.reset()
        self.assertEqual(self.scanner.feed(" HANGUP]"), [])


class TestTranscriptParser(unittest.TestCase):
    def setUp(self):
        self.parser = TranscriptParser()

    def test_initial_state(self):
        self.assertEqual(self.parser.classification, CallClassification.UNKNOWN)
        self.assertIsNone(self.parser.action)
        self.assertEqual(self.parser.turn_state, TurnState.IDLE)
        self.assertEqual(self.parser.phase, CallPhase.UNCLASSIFIED)

    def test_fragments_start_a_turn(self):
        self.parser.add_caller_fragment("হ্যালো")
        self.assertEqual(self.parser.turn_state, TurnState.TURN_IN_PROGRESS)

    def test_important_caller_is_transferred(self):
        self.parser.add_caller_fragment("আমি ব্যাংক থেকে ")
        self.parser.add_caller_fragment("বলছি")
        self.parser.add_assistant_fragment("[CALL_TYPE: IMPORTANT] ধন্যবাদ, ")
        applied = self.parser.add_assistant_fragment("ট্রান্সফার করছি। [ACTION: TRANSFER]")

        self.assertEqual(applied, [ControlTag("ACTION", "TRANSFER")])
        self.assertEqual(self.parser.classification, CallClassification.IMPORTANT)
        self.assertEqual(self.parser.action, ActionCode.TRANSFER)
        self.assertEqual(self.parser.phase, CallPhase.ACTION_PENDING)

        entries = self.parser.complete_turn()
        self.assertEqual([e.role for e in entries], [Role.CALLER, Role.ASSISTANT])
        self.assertEqual(entries[0].text, "আমি ব্যাংক থেকে বলছি")
        self.assertEqual(entries[1].text, "ধন্যবাদ, ট্রান্সফার করছি।")
        self.assertEqual(self.parser.turn_state, TurnState.IDLE)

    def test_spam_caller_is_hung_up(self):
        applied = self.parser.add_assistant_fragment(
            "[CALL_TYPE: SPAM] আমরা আগ্রহী নই। [ACTION: HANGUP]"
        )
        self.assertEqual(len(applied), 2)
        self.assertEqual(self.parser.classification, CallClassification.SPAM)
        self.assertEqual(self.parser.action, ActionCode.HANGUP)

    def test_classification_is_first_write_wins(self):
        self.parser.add_assistant_fragment("[CALL_TYPE: SPAM]")
        applied = self.parser.add_assistant_fragment("[CALL_TYPE: IMPORTANT]")
        self.assertEqual(applied, [])
        self.assertEqual(self.parser.classification, CallClassification.SPAM)

    def test_action_is_first_write_wins(self):
        self.parser.add_assistant_fragment("[ACTION: HANGUP]")
        applied = self.parser.add_assistant_fragment("[ACTION: TRANSFER]")
        self.assertEqual(applied, [])
        self.assertEqual(self.parser.action, ActionCode.HANGUP)

    def test_repeated_tag_is_not_applied_twice(self):
        self.assertEqual(len(self.parser.add_assistant_fragment("[ACTION: HANGUP]")), 1)
        self.assertEqual(self.parser.add_assistant_fragment("[ACTION: HANGUP]"), [])

    def test_unknown_tag_values_are_ignored(self):
        self.assertEqual(self.parser.add_assistant_fragment("[ACTION: DANCE] [CALL_TYPE: UNKNOWN]"), [])
        self.assertIsNone(self.parser.action)
        self.assertEqual(self.parser.classification, CallClassification.UNKNOWN)

    def test_split_tag_is_applied(self):
        self.parser.add_assistant_fragment("বিদায়। [ACTION: HA")
        self.assertIsNone(self.parser.action)
        self.parser.add_assistant_fragment("NGUP]")
        self.assertEqual(self.parser.action, ActionCode.HANGUP)
        entries = self.parser.complete_turn()
        self.assertEqual(entries[0].text, "বিদায়।")

    def test_plain_fragments_are_concatenated(self):
        for fragment in ("আপনি", " কে", " বলতে"):
            self.parser.add_assistant_fragment(fragment)
        entries = self.parser.complete_turn()
        self.assertEqual([e.text for e in entries], ["আপনি কে বলতে"])
        self.assertEqual(self.parser.classification, CallClassification.UNKNOWN)
        self.assertIsNone(self.parser.action)

    def test_tag_order_does_not_matter(self):
        self.parser.add_assistant_fragment("[ACTION: HANGUP] দুঃখিত [CALL_TYPE: SPAM]")
        self.assertEqual(self.parser.classification, CallClassification.SPAM)
        self.assertEqual(self.parser.action, ActionCode.HANGUP)

    def test_empty_turn_emits_nothing(self):
        self.assertEqual(self.parser.complete_turn(), [])

    def test_whitespace_caller_buffer_is_skipped(self):
        self.parser.add_caller_fragment("   ")
        self.parser.add_assistant_fragment("জি বলুন")
        entries = self.parser.complete_turn()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].role, Role.ASSISTANT)

    def test_tag_only_assistant_turn_emits_only_caller(self):
        self.parser.add_caller_fragment("hello")
        self.parser.add_assistant_fragment("[CALL_TYPE: SPAM]")
        entries = self.parser.complete_turn()
        self.assertEqual([e.role for e in entries], [Role.CALLER])

    def test_tags_ignored_after_termination(self):
        self.parser.mark_terminated()
        self.assertEqual(self.parser.add_assistant_fragment("[ACTION: HANGUP]"), [])
        self.assertEqual(self.parser.phase, CallPhase.TERMINATED)


@pytest.mark.parametrize(
    "fragments",
    [
        ["[CALL_TYPE: SPAM]"],
        ["[CALL_TYPE:", " SPAM]"],
        ["[", "CALL_TYPE: S", "PAM", "]"],
        ["x[CALL_TYPE:SPAM]y"],
    ],
)
def test_classification_detected_regardless_of_chunking(fragments):
    parser = TranscriptParser()
    for fragment in fragments:
        parser.add_assistant_fragment(fragment)
    assert parser.classification == CallClassification.SPAM
