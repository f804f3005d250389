"""CLI command implementations for Smart Router.

- decisions: route a request, record an outcome, show a decision
- quota: show a wallet's quota, change its tier
- stats: decision statistics and model performance
- patterns: list and add patterns
- config: create and display configuration
"""
