"""Newsletter synthesis, rendering and delivery."""

from aidigest.digest.markup import markdown_to_html
from aidigest.digest.renderer import build_environment, render_newsletter
from aidigest.digest.sender import DeliveryDispatcher, DeliveryResult, RetryPolicy
from aidigest.digest.synthesizer import ContentSynthesizer

__all__ = [
    "ContentSynthesizer",
    "DeliveryDispatcher",
    "DeliveryResult",
    "RetryPolicy",
    "build_environment",
    "markdown_to_html",
    "render_newsletter",
]
