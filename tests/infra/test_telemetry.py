from __future__ import annotations

import asyncio
import logging
import unittest

import minddump
from minddump.observability.logging import bind_thought_id, current_thought_id, get_logger
from minddump.observability.telemetry import (
    counter,
    get_counters,
    get_latency_stats,
    reset_telemetry,
    time_block,
)
from minddump.thoughts.taxonomy import Category


class TelemetryTests(unittest.TestCase):
    def setUp(self):
        reset_telemetry()

    def test_time_block_appends_ms_suffix(self):
        with time_block("analysis.provider"):
            pass

        stats = get_latency_stats("analysis.provider")
        self.assertEqual(stats["count"], 1)
        self.assertGreaterEqual(stats["p95"], 0.0)

    def test_time_block_respects_existing_suffix(self):
        with time_block("pipeline.total_ms"):
            pass

        self.assertEqual(get_latency_stats("pipeline.total")["count"], 1)

    def test_empty_stats(self):
        self.assertEqual(get_latency_stats("never.recorded")["count"], 0)

    def test_counter_increments(self):
        before = counter("test.counter", 0)
        counter("test.counter")
        after = counter("test.counter", 0)
        self.assertEqual(after, before + 1)
        self.assertEqual(get_counters("test."), {"test.counter": 1})


class ThoughtIdLoggingTests(unittest.TestCase):
    def test_bound_id_is_visible_and_reset(self):
        self.assertEqual(current_thought_id(), "-")
        with bind_thought_id("thought_1"):
            self.assertEqual(current_thought_id(), "thought_1")
        self.assertEqual(current_thought_id(), "-")

    def test_spawned_task_keeps_bound_id(self):
        async def scenario():
            async def read_later():
                await asyncio.sleep(0)
                return current_thought_id()

            with bind_thought_id("thought_2"):
                task = asyncio.create_task(read_later())
            return await task

        self.assertEqual(asyncio.run(scenario()), "thought_2")

    def test_records_carry_thought_id(self):
        logger = get_logger("minddump.test")
        with self.assertLogs(logger, level=logging.INFO) as captured, bind_thought_id("thought_3"):
            logger.info("hello")
        self.assertEqual(captured.records[0].getMessage(), "hello")


class PackageExportTests(unittest.TestCase):
    def test_lazy_exports(self):
        self.assertIs(minddump.Category, Category)
        self.assertEqual(minddump.get_category("task").category, Category.TASK)
        with self.assertRaises(AttributeError):
            minddump.not_a_thing  # noqa: B018


if __name__ == "__main__":
    unittest.main()
