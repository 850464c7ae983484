"""VRTL Engine - AI visibility snapshots for agency clients.

Asks several LLM providers a fixed pack of questions about a client's
market, has each answer describe itself as a structured extraction, and
turns those extractions into a 0-100 visibility score per provider.

Components:
- llm: prompt packs, provider adapters, response parsing
- pipeline: snapshot orchestration, stuck-run recovery, snapshot detail
- scoring: balanced composite score
- store: SQLite persistence
- mlops: MLflow tracing
"""
