"""
Шаблоны перевозчиков: base.yaml + <template>/template.yaml.
"""

from .config_loader import (
    CargoPlaceholder,
    CommentConfig,
    CustomerConfig,
    DetectionConfig,
    NoteRule,
    ReferencePattern,
    StopConfig,
    TemplateConfig,
    TemplateConfigLoader,
)

__all__ = [
    "CargoPlaceholder",
    "CommentConfig",
    "CustomerConfig",
    "DetectionConfig",
    "NoteRule",
    "ReferencePattern",
    "StopConfig",
    "TemplateConfig",
    "TemplateConfigLoader",
]
