"""
Mealwise - household meal planning assistant.

Generates recipe plans for a household through an LLM pipeline with
quality validation, bounded retries and local instruction repair.
"""

__version__ = "0.1.0"
