import json
import unittest

from backend.parsers.messages import COMPACT_BOUNDARY_TEXT, normalize_records, tool_result_to_text
from backend.parsers.records import decode_line


def _records(*entries: dict):
    return [decode_line(json.dumps(entry)) for entry in entries]


class ToolResultToTextTests(unittest.TestCase):
    def test_flattens_text_blocks_with_newlines(self) -> None:
        content = [{"type": "text", "text": "X"}, {"type": "text", "text": "Y"}]
        self.assertEqual(tool_result_to_text(content), "X\nY")

    def test_non_text_items_are_serialized(self) -> None:
        content = [{"type": "image", "source": {"kind": "png"}}, "plain"]
        self.assertEqual(tool_result_to_text(content), '{"type":"image","source":{"kind":"png"}}\nplain')
        self.assertEqual(tool_result_to_text(None), "")
        self.assertEqual(tool_result_to_text({"ok": True}), '{"ok":true}')


class NormalizeRecordsTests(unittest.TestCase):
    def test_single_text_record_yields_one_message(self) -> None:
        messages = normalize_records(
            _records({"type": "user", "timestamp": "2026-02-16T10:00:00Z", "message": {"role": "user", "content": "Hello"}})
        )

        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].role, "user")
        self.assertEqual(messages[0].type, "text")
        self.assertEqual(messages[0].content, "Hello")
        self.assertEqual(messages[0].timestamp, "2026-02-16T10:00:00Z")

    def test_tool_result_list_content(self) -> None:
        messages = normalize_records(
            _records(
                {
                    "type": "user",
                    "message": {
                        "role": "user",
                        "content": [
                            {
                                "type": "tool_result",
                                "tool_use_id": "toolu_9",
                                "content": [{"type": "text", "text": "X"}, {"type": "text", "text": "Y"}],
                            }
                        ],
                    },
                }
            )
        )

        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].type, "tool_result")
        self.assertEqual(messages[0].role, "assistant")
        self.assertEqual(messages[0].content, "X\nY")
        self.assertEqual(messages[0].toolUseId, "toolu_9")

    def test_assistant_blocks_expand_in_order(self) -> None:
        messages = normalize_records(
            _records(
                {
                    "type": "assistant",
                    "gitBranch": "main",
                    "message": {
                        "role": "assistant",
                        "model": "claude-opus",
                        "usage": {"input_tokens": 10, "output_tokens": 20, "cache_read_input_tokens": 5},
                        "content": [
                            {"type": "thinking", "thinking": "plan"},
                            {"type": "text", "text": "Doing it"},
                            {"type": "tool_use", "id": "toolu_1", "name": "Bash", "input": {"command": "ls"}},
                            {"type": "text", "text": ""},
                        ],
                    },
                }
            )
        )

        self.assertEqual([m.type for m in messages], ["thinking", "text", "tool_use"])
        tool_use = messages[2]
        self.assertEqual(tool_use.toolName, "Bash")
        self.assertEqual(tool_use.toolUseId, "toolu_1")
        self.assertEqual(json.loads(tool_use.content), {"command": "ls"})
        metadata = messages[1].metadata
        self.assertIsNotNone(metadata)
        self.assertEqual(metadata.model, "claude-opus")
        self.assertEqual(metadata.gitBranch, "main")
        self.assertEqual(metadata.inputTokens, 10)
        self.assertEqual(metadata.cacheReadInputTokens, 5)

    def test_compact_boundary_becomes_system_message(self) -> None:
        messages = normalize_records(
            _records(
                {"type": "system", "subtype": "compact_boundary", "timestamp": "2026-02-16T10:00:00Z"},
                {"type": "system", "subtype": "informational", "content": "ignored"},
            )
        )

        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].role, "system")
        self.assertEqual(messages[0].type, "system")
        self.assertEqual(messages[0].content, COMPACT_BOUNDARY_TEXT)

    def test_non_conversational_records_are_dropped(self) -> None:
        messages = normalize_records(
            _records(
                {"type": "summary", "summary": "Session summary"},
                {"type": "queue-operation", "operation": "enqueue", "content": "x"},
                {"type": "file-history-snapshot", "snapshot": {}},
                {"type": "user", "message": {"role": "user", "content": ""}},
                {"type": "user", "message": {"role": "user", "content": "kept"}},
            )
        )

        self.assertEqual([m.content for m in messages], ["kept"])
        self.assertIsNone(messages[0].metadata)

    def test_team_name_is_stamped(self) -> None:
        messages = normalize_records(
            _records({"type": "assistant", "message": {"role": "assistant", "content": "sub"}}),
            team_name="Research",
        )
        self.assertEqual(messages[0].teamName, "Research")


if __name__ == "__main__":
    unittest.main()
