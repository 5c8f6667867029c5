# backend/app/modules/translation/core/__init__.py
"""Orchestration of translation jobs: glossary preprocessing, matrix execution and service wiring."""
