"""Agent loop that drives a language model through sandboxed reads."""
