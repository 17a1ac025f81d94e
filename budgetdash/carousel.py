"""Windowed pagination that adapts its page size to the viewport class.

The core invariant, held after every transition:
    0 <= current_index <= max(0, total_items - page_size)
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class DeviceClass:
    name: str
    max_width: Optional[int]  # exclusive upper bound, None for the widest class
    page_size: int
    card_width: int
    gap: int


DEVICE_CLASSES: Tuple[DeviceClass, ...] = (
    DeviceClass("mobile", 768, 1, 320, 16),
    DeviceClass("tablet", 1024, 1, 360, 20),
    DeviceClass("desktop", 1440, 2, 390, 24),
    DeviceClass("large", 1920, 2, 420, 24),
    DeviceClass("ultraWide", None, 3, 420, 32),
)


def classify_viewport(width: int, classes: Sequence[DeviceClass] = DEVICE_CLASSES) -> DeviceClass:
    for device in classes:
        if device.max_width is None or width < device.max_width:
            return device
    return classes[-1]


@dataclass(frozen=True)
class CarouselState:
    page_size: int = 1
    current_index: int = 0
    total_items: int = 0
    real_items: int = 0

    @property
    def max_index(self) -> int:
        return max(0, self.total_items - self.page_size)

    @property
    def navigable(self) -> bool:
        return self.real_items > self.page_size

    @property
    def can_prev(self) -> bool:
        return self.navigable and self.current_index > 0

    @property
    def can_next(self) -> bool:
        return self.navigable and self.current_index < self.total_items - self.page_size


def clamp(state: CarouselState) -> CarouselState:
    index = max(0, min(state.current_index, state.max_index))
    if index == state.current_index:
        return state
    return replace(state, current_index=index)


def next_page(state: CarouselState) -> CarouselState:
    if not state.can_next:
        return state
    return clamp(replace(state, current_index=state.current_index + 1))


def prev_page(state: CarouselState) -> CarouselState:
    if not state.can_prev:
        return state
    return clamp(replace(state, current_index=state.current_index - 1))


def resize(state: CarouselState, device: DeviceClass) -> CarouselState:
    return clamp(replace(state, page_size=max(1, device.page_size)))


def data_changed(state: CarouselState, total_items: int, real_items: int) -> CarouselState:
    return clamp(replace(state, total_items=max(0, total_items), real_items=max(0, real_items)))


def visible_window(items: Sequence[T], state: CarouselState) -> Sequence[T]:
    start = state.current_index
    return items[start:start + state.page_size]


class ResponsiveCarousel:
    def __init__(self, width: int = 1280, classes: Sequence[DeviceClass] = DEVICE_CLASSES):
        self.classes = tuple(classes)
        self.device = classify_viewport(width, self.classes)
        self.state = CarouselState(page_size=self.device.page_size)

    @property
    def page_size(self) -> int:
        return self.state.page_size

    @property
    def offset_px(self) -> int:
        return self.state.current_index * (self.device.card_width + self.device.gap)

    def set_items(self, total_items: int, real_items: int) -> CarouselState:
        self.state = data_changed(self.state, total_items, real_items)
        return self.state

    def resize(self, width: int) -> bool:
        """Reclassify the viewport; returns True when the device class changed."""
        device = classify_viewport(width, self.classes)
        if device == self.device:
            return False
        logger.info("Viewport class %s -> %s", self.device.name, device.name)
        self.device = device
        self.state = resize(self.state, device)
        return True

    def next(self) -> bool:
        before = self.state
        self.state = next_page(self.state)
        return self.state is not before

    def prev(self) -> bool:
        before = self.state
        self.state = prev_page(self.state)
        return self.state is not before

    def window(self, items: Sequence[T]) -> Sequence[T]:
        return visible_window(items, self.state)
