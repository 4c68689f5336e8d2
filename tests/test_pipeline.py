"""Tests for the item pipeline and built-in stages."""

import pytest

from crawlcore.exceptions import DropItem, PipelineError
from crawlcore.http import Item
from crawlcore.pipeline import DuplicatesPipeline, ItemPipeline, ValidationPipeline


class AppendStage:
    """Appends its name to item["trace"]."""

    def __init__(self, name, log=None):
        self.name = name
        self.log = log if log is not None else []

    def process_item(self, item, spider):
        item.setdefault("trace", []).append(self.name)
        self.log.append(self.name)
        return item


class HookStage:
    def __init__(self, events, fail_on_close=False):
        self.events = events
        self.fail_on_close = fail_on_close

    def open_spider(self, spider):
        self.events.append(("open", spider))

    def close_spider(self, spider):
        self.events.append(("close", spider))
        if self.fail_on_close:
            raise RuntimeError("close failed")

    def process_item(self, item, spider):
        return item


class TestItemPipeline:
    def test_applies_stages_in_order(self):
        """Stage i+1 should see the output of stage i."""
        pipeline = ItemPipeline([AppendStage("a"), AppendStage("b"), AppendStage("c")])
        item = pipeline.process(Item(url="x"))
        assert item["trace"] == ["a", "b", "c"]

    def test_rejection_short_circuits(self):
        """A rejected item should not reach later stages."""
        later = AppendStage("later")
        pipeline = ItemPipeline([ValidationPipeline(["name"]), later])

        with pytest.raises(DropItem) as info:
            pipeline.process(Item(url="x"))

        assert later.log == []
        assert info.value.stage == "ValidationPipeline"

    def test_validation_then_duplicates_does_not_record_rejected_key(self):
        """Stage 2 dedup state should not change for an item rejected at stage 1."""
        duplicates = DuplicatesPipeline(key_field="url")
        pipeline = ItemPipeline([ValidationPipeline(["name"]), duplicates])

        with pytest.raises(DropItem):
            pipeline.process(Item(url="x"))

        assert duplicates.seen == set()
        item = pipeline.process(Item(url="x", name="ok"))
        assert item["url"] == "x"
        assert duplicates.seen == {"x"}

    def test_deterministic(self):
        """The same item through the same stages should give the same result."""
        def run():
            pipeline = ItemPipeline([ValidationPipeline(["name"]), AppendStage("a")])
            return pipeline.process(Item(name="  Some   Name ", url="u"))

        assert run() == run()

    def test_stage_returning_none_is_rejection(self):
        """A stage that forgets to return the item drops it."""
        class Forgetful:
            def process_item(self, item, spider):
                return None

        pipeline = ItemPipeline([Forgetful()])
        with pytest.raises(DropItem) as info:
            pipeline.process(Item(a=1))
        assert info.value.stage == "Forgetful"

    def test_other_exceptions_propagate(self):
        """Non-rejection errors should propagate untouched."""
        class Broken:
            def process_item(self, item, spider):
                raise ValueError("boom")

        with pytest.raises(ValueError):
            ItemPipeline([Broken()]).process(Item())

    def test_open_and_close_hooks(self):
        """Hooks should receive the spider."""
        events = []
        spider = object()
        pipeline = ItemPipeline([HookStage(events), AppendStage("a")])

        pipeline.open(spider)
        pipeline.close(spider)

        assert events == [("open", spider), ("close", spider)]

    def test_close_continues_after_failure(self):
        """A failing close hook should not skip the others."""
        events = []
        pipeline = ItemPipeline([HookStage(events, fail_on_close=True), HookStage(events)])

        pipeline.open(None)
        pipeline.close(None)

        assert [e[0] for e in events] == ["open", "open", "close", "close"]

    def test_add_stage_rejected_while_open(self):
        """Stage order is fixed once the pipeline is open."""
        pipeline = ItemPipeline()
        pipeline.add_stage(AppendStage("a"))
        pipeline.open(None)

        with pytest.raises(PipelineError):
            pipeline.add_stage(AppendStage("b"))

        pipeline.close(None)
        pipeline.add_stage(AppendStage("b"))
        assert len(pipeline) == 2


class TestValidationPipeline:
    def test_missing_field_rejected(self):
        """Missing required field should raise DropItem."""
        with pytest.raises(DropItem, match="name"):
            ValidationPipeline(["name"]).process_item(Item(url="x"), None)

    @pytest.mark.parametrize("value", ["", None, [], {}])
    def test_empty_field_rejected(self, value):
        """Empty required values should raise DropItem."""
        with pytest.raises(DropItem):
            ValidationPipeline(["name"]).process_item(Item(name=value), None)

    def test_zero_is_not_empty(self):
        """Falsy numbers are valid values."""
        item = ValidationPipeline(["count"]).process_item(Item(count=0), None)
        assert item["count"] == 0

    def test_collapses_whitespace(self):
        """String values should have whitespace normalized."""
        item = ValidationPipeline().process_item(Item(title="  A \n\t title  ", n=3), None)
        assert item["title"] == "A title"
        assert item["n"] == 3


class TestDuplicatesPipeline:
    def test_first_passes_second_rejected(self):
        """Second item with same key should be dropped."""
        stage = DuplicatesPipeline("url")
        stage.process_item(Item(url="http://example.com"), None)

        with pytest.raises(DropItem, match="duplicate"):
            stage.process_item(Item(url="http://example.com"), None)

    def test_missing_key_passes(self):
        """Items without the key are not deduplicated."""
        stage = DuplicatesPipeline("url")
        stage.process_item(Item(title="a"), None)
        stage.process_item(Item(title="a"), None)
        assert stage.seen == set()

    def test_state_is_per_instance(self):
        """Two stages should not share seen keys."""
        first, second = DuplicatesPipeline(), DuplicatesPipeline()
        first.process_item(Item(url="x"), None)
        assert second.process_item(Item(url="x"), None)["url"] == "x"

    def test_seen_keys_reset_when_pipeline_reopens(self):
        """A new crawl should start with an empty set of seen keys."""
        stage = DuplicatesPipeline("url")
        pipeline = ItemPipeline([stage])

        pipeline.open(None)
        pipeline.process(Item(url="http://example.com/a"))
        pipeline.close(None)

        pipeline.open(None)
        assert pipeline.process(Item(url="http://example.com/a"))["url"] == "http://example.com/a"
        pipeline.close(None)
