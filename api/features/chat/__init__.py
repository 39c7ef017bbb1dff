"""Chat feature package: stores, reply generator, orchestrator and HTTP layer.

Conversations and messages live in PostgreSQL through SQLAlchemy; replies are
generated by the OpenAI chat completions API with a file-backed knowledge
block in the system prompt.
"""
