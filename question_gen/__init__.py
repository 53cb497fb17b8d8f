"""Question and coding problem generation for interview rounds."""
from .fallback import fallback_item
from .generator import GeneratedItem, GeneratedItems, generate_items, plan_categories

__all__ = ["fallback_item", "GeneratedItem", "GeneratedItems", "generate_items", "plan_categories"]
