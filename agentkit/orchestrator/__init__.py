"""Turn orchestration: the multi-turn tool-calling loop."""
