"""
Test suite for settler

Contains:
- tests/unit/ : unit tests for math, domain, netting, profit, lifecycle,
  memory collaborators and end-to-end coordinator scenarios
"""
