"""AgentForge: LLM-ассистент в терминале."""

__version__ = "0.1.0"
