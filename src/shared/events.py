"""Уведомления просмотрщика и инфраструктура наблюдателей (Observer)."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ViewerEvent(str, Enum):
    """События, которые генерирует ядро просмотрщика."""

    LOADING = 'loading'
    ZOOM_CHANGED = 'zoom_changed'
    MAP_CHANGED = 'map_changed'
    REPAINT_REQUESTED = 'repaint_requested'


class EventData(BaseModel):
    """Базовая структура данных события."""

    event: ViewerEvent
    timestamp: float = Field(default_factory=time.time)
    data: dict[str, object] = Field(default_factory=dict)


class Observer:
    """Базовый интерфейс наблюдателя."""

    def update(self, event_data: EventData) -> None:
        """Обработчик уведомлений (должен быть реализован в наследниках)."""
        msg = 'Метод update должен быть реализован в наследнике'
        raise NotImplementedError(msg)


class CallbackObserver(Observer):
    """Наблюдатель-обёртка над функцией."""

    def __init__(self, callback: Callable[[EventData], None]) -> None:
        self._callback = callback

    def update(self, event_data: EventData) -> None:
        self._callback(event_data)


class Observable:
    """Mixin class to add Observer pattern functionality."""

    def __init__(self) -> None:
        self._observers: list[Observer] = []

    def add_observer(self, observer: Observer) -> None:
        """Add an observer to receive notifications."""
        if observer not in self._observers:
            self._observers.append(observer)
            logger.debug('Added observer: %s', observer.__class__.__name__)

    def remove_observer(self, observer: Observer) -> None:
        """Remove an observer."""
        if observer in self._observers:
            self._observers.remove(observer)
            logger.debug('Removed observer: %s', observer.__class__.__name__)

    def notify_observers(
        self,
        event: ViewerEvent,
        data: dict[str, object] | None = None,
    ) -> None:
        """Notify all observers of an event, synchronously and in order."""
        event_data = EventData(event=event, data=data or {})

        for observer in self._observers:
            try:
                observer.update(event_data)
            except Exception:
                logger.exception(
                    'Error notifying observer %s',
                    observer.__class__.__name__,
                )
