# src/shared/__init__.py
"""
Общий код между сервисами.

Модули:
- models: общие модели ответов (ошибки, health)
"""

__all__: list[str] = []
