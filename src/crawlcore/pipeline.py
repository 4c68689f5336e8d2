"""Item pipeline: an ordered chain of processing stages."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Iterable, Protocol

from .exceptions import DropItem, PipelineError
from .http import Item

if TYPE_CHECKING:
    from .spider import Spider

logger = logging.getLogger(__name__)


class PipelineStage(Protocol):
    """One transform, validation or sink step.

    Stages may also define ``open_spider(spider)`` and ``close_spider(spider)``.
    """

    def process_item(self, item: Item, spider: Spider | None) -> Item:
        ...


def _stage_name(stage: Any) -> str:
    return type(stage).__name__


class ItemPipeline:
    """Applies stages in registration order; the first rejection stops the chain.

    Stages can only be added before ``open`` is called, so every item of a
    run sees the same sequence.
    """

    def __init__(self, stages: Iterable[PipelineStage] = ()):
        self._stages: list[PipelineStage] = list(stages)
        self._opened = False

    @property
    def stages(self) -> tuple[PipelineStage, ...]:
        return tuple(self._stages)

    def add_stage(self, stage: PipelineStage) -> None:
        if self._opened:
            raise PipelineError("cannot add pipeline stages while a crawl is running")
        self._stages.append(stage)

    def open(self, spider: Spider | None) -> None:
        self._opened = True
        for stage in self._stages:
            hook = getattr(stage, "open_spider", None)
            if hook is not None:
                hook(spider)

    def close(self, spider: Spider | None) -> None:
        """Call every ``close_spider`` hook, even if an earlier one fails."""
        try:
            for stage in self._stages:
                hook = getattr(stage, "close_spider", None)
                if hook is None:
                    continue
                try:
                    hook(spider)
                except Exception:
                    logger.exception("Error closing pipeline stage %s", _stage_name(stage))
        finally:
            self._opened = False

    def process(self, item: Item, spider: Spider | None = None) -> Item:
        """Run ``item`` through every stage.

        Raises DropItem (tagged with the rejecting stage) when a stage rejects
        the item; later stages never see it.
        """
        for stage in self._stages:
            try:
                item = stage.process_item(item, spider)
            except DropItem as e:
                if e.stage is None:
                    e.stage = _stage_name(stage)
                raise
            if item is None:
                raise DropItem("stage returned no item", stage=_stage_name(stage))
        return item

    def __len__(self) -> int:
        return len(self._stages)


class ValidationPipeline:
    """Rejects items missing a required field and normalizes whitespace in strings."""

    _whitespace = re.compile(r"\s+")

    def __init__(self, required_fields: Iterable[str] = ()):
        self.required_fields = list(required_fields)

    def process_item(self, item: Item, spider: Spider | None) -> Item:
        for field in self.required_fields:
            value = item.get(field)
            if value is None or value == "" or value == [] or value == {}:
                raise DropItem(f"missing required field: {field}")

        for key, value in list(item.items()):
            if isinstance(value, str):
                item[key] = self._whitespace.sub(" ", value).strip()

        return item


class DuplicatesPipeline:
    """Rejects items whose ``key_field`` value was already seen by this stage."""

    def __init__(self, key_field: str = "url"):
        self.key_field = key_field
        self.seen: set = set()

    def open_spider(self, spider: Spider | None) -> None:
        # Keys are only remembered for the duration of one crawl.
        self.seen = set()

    def process_item(self, item: Item, spider: Spider | None) -> Item:
        key = item.get(self.key_field)
        if not key:
            return item

        if key in self.seen:
            raise DropItem(f"duplicate item: {self.key_field}={key}")

        self.seen.add(key)
        return item
