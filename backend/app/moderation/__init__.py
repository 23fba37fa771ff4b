"""Drawing relay moderation: registry, fan-out, checks and the pipeline."""

from app.moderation.broadcast import Broadcaster, Connection, Group, Role
from app.moderation.classifier import ContentClassifier, TesseractRecognizer
from app.moderation.config import ModerationConfig
from app.moderation.drawing import Drawing
from app.moderation.pipeline import ModerationPipeline, create_pipeline
from app.moderation.registry import DrawingRegistry
from app.moderation.shape_check import ShapeCheckCoordinator

__all__ = [
    "Broadcaster",
    "Connection",
    "ContentClassifier",
    "Drawing",
    "DrawingRegistry",
    "Group",
    "ModerationConfig",
    "ModerationPipeline",
    "Role",
    "ShapeCheckCoordinator",
    "TesseractRecognizer",
    "create_pipeline",
]
