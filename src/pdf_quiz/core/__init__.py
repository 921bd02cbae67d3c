"""Plumbing shared by the pdf-quiz commands: OpenAI client, TOML, logs, workspace."""
