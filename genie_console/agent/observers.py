from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

TextHandler = Callable[[str], None]
ImageHandler = Callable[[Path], None]


class StreamObservers:
    """
    Ordered subscriber lists for streamed text and downloaded images.
    Handlers are called synchronously, in registration order.
    """

    def __init__(self) -> None:
        self.text_handlers: list[TextHandler] = []
        self.image_handlers: list[ImageHandler] = []

    def subscribe_text(self, handler: TextHandler) -> None:
        self.text_handlers.append(handler)

    def subscribe_image(self, handler: ImageHandler) -> None:
        self.image_handlers.append(handler)

    def emit_text(self, text: str) -> None:
        for handler in self.text_handlers:
            handler(text)

    def emit_image(self, path: Path) -> None:
        for handler in self.image_handlers:
            handler(path)
