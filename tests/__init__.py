"""
Learning Agent Test Suite

Unit and integration tests for all modules. No test touches the network:
every LLM call is patched.
Run tests with: pytest tests/
"""
