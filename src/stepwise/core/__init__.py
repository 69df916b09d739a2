"""Core LLM abstractions and token estimation."""
