import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from backend.parsers.records import (
    Record,
    RecordKind,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
    UnknownBlock,
    decode_line,
    decode_lines,
    read_records,
)


class DecodeLineTests(unittest.TestCase):
    def test_blank_and_malformed_lines_decode_to_none(self) -> None:
        self.assertIsNone(decode_line(""))
        self.assertIsNone(decode_line("   \n"))
        self.assertIsNone(decode_line('{"type": "user", "message":'))
        self.assertIsNone(decode_line("[1, 2, 3]"))

    def test_decoding_is_idempotent(self) -> None:
        line = json.dumps(
            {
                "type": "assistant",
                "timestamp": "2026-02-16T10:00:00Z",
                "gitBranch": "feature/x",
                "message": {
                    "role": "assistant",
                    "model": "claude-sonnet",
                    "usage": {"input_tokens": 3, "output_tokens": 4},
                    "content": [
                        {"type": "text", "text": "hello"},
                        {"type": "tool_use", "id": "toolu_1", "name": "Read", "input": {"file_path": "a.py"}},
                    ],
                },
            }
        )
        first = decode_line(line)
        second = decode_line(line)
        self.assertIsNotNone(first)
        self.assertEqual(first, second)

    def test_content_blocks_are_typed_per_variant(self) -> None:
        record = decode_line(
            json.dumps(
                {
                    "type": "user",
                    "message": {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": "hi"},
                            {"type": "thinking", "thinking": "hmm"},
                            {"type": "tool_use", "id": "t1", "name": "Bash", "input": {"command": "ls"}},
                            {"type": "tool_result", "tool_use_id": "t1", "content": "ok", "is_error": True},
                            {"type": "image", "source": {}},
                        ],
                    },
                }
            )
        )
        assert record is not None
        self.assertEqual(record.kind, RecordKind.USER)
        kinds = [type(block) for block in record.blocks]
        self.assertEqual(kinds, [TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock, UnknownBlock])
        self.assertTrue(record.blocks[3].is_error)
        self.assertEqual(record.blocks[4].type, "image")

    def test_record_kinds_and_agent_id(self) -> None:
        summary = decode_line('{"type": "summary", "summary": "Done"}')
        queue = decode_line('{"type": "queue-operation", "operation": "enqueue"}')
        other = decode_line('{"type": "file-history-snapshot"}')
        compact = decode_line('{"type": "system", "subtype": "compact_boundary"}')
        result = decode_line(
            json.dumps(
                {
                    "type": "user",
                    "toolUseResult": {"agentId": " agent-1 "},
                    "message": {"role": "user", "content": "x"},
                }
            )
        )

        self.assertEqual(summary.kind, RecordKind.SUMMARY)
        self.assertEqual(queue.kind, RecordKind.QUEUE_OPERATION)
        self.assertEqual(other.kind, RecordKind.UNKNOWN)
        self.assertEqual(other.raw_type, "file-history-snapshot")
        self.assertEqual(compact.kind, RecordKind.SYSTEM)
        self.assertEqual(compact.subtype, "compact_boundary")
        self.assertEqual(result.agent_id, "agent-1")
        self.assertEqual(result.blocks, ())

    def test_raw_fields_are_read_only(self) -> None:
        record = decode_line('{"type": "user", "agentName": "Reviewer", "message": {"role": "user", "content": "x"}}')
        assert record is not None
        self.assertEqual(record.fields["agentName"], "Reviewer")
        with self.assertRaises(TypeError):
            record.fields["agentName"] = "Other"  # type: ignore[index]
        self.assertEqual(dict(Record(kind=RecordKind.UNKNOWN).fields), {})

    def test_legacy_top_level_role_and_content(self) -> None:
        record = decode_line('{"role": "assistant", "content": "legacy"}')
        assert record is not None
        self.assertEqual(record.kind, RecordKind.ASSISTANT)
        self.assertEqual(record.message.content, "legacy")


class DecodeLinesTests(unittest.TestCase):
    def test_malformed_middle_line_does_not_truncate(self) -> None:
        lines = [
            json.dumps({"type": "user", "message": {"role": "user", "content": "first"}}),
            "{not json",
            "",
            json.dumps({"type": "assistant", "message": {"role": "assistant", "content": "last"}}),
        ]
        with patch("backend.parsers.records.record_decode_failure") as failures:
            records = decode_lines(lines)

        self.assertEqual([record.message.content for record in records], ["first", "last"])
        failures.assert_called_once_with("session_log", 1)

    def test_lines_the_json_parser_rejects_without_decode_errors_are_skipped(self) -> None:
        huge_int = '{"type": "user", "n": ' + "1" * 5000 + "}"
        deep_nesting = "[" * 100000 + "]" * 100000
        self.assertIsNone(decode_line(huge_int))
        self.assertIsNone(decode_line(deep_nesting))

        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "s.jsonl"
        good = [json.dumps({"type": "user", "message": {"role": "user", "content": text}}) for text in ("a", "b")]
        path.write_text("\n".join([good[0], huge_int, deep_nesting, good[1]]) + "\n", encoding="utf-8")

        records = read_records(path)

        self.assertEqual([record.message.content for record in records], ["a", "b"])

    def test_read_records_missing_file_is_empty(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.assertEqual(read_records(Path(tmpdir.name) / "nope.jsonl"), [])

    def test_read_records_reads_file_in_order(self) -> None:
        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        path = Path(tmpdir.name) / "s.jsonl"
        path.write_text(
            "\n".join(
                json.dumps({"type": "user", "message": {"role": "user", "content": text}})
                for text in ("a", "b", "c")
            )
            + "\n",
            encoding="utf-8",
        )

        records = read_records(path)

        self.assertTrue(all(isinstance(record, Record) for record in records))
        self.assertEqual([record.message.content for record in records], ["a", "b", "c"])


if __name__ == "__main__":
    unittest.main()
