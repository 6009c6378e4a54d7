"""LLM provider implementations. Registration happens in dormfix.clients.llm.registry."""
