"""Shared testing fixtures and stubs for the pdf_quiz test suite."""

from .openai import OpenAIStub, OpenAIStubFactory  # noqa: F401
from .workspace import WorkspaceBuilder, build_tree  # noqa: F401

__all__ = [
    "OpenAIStub",
    "OpenAIStubFactory",
    "WorkspaceBuilder",
    "build_tree",
]
