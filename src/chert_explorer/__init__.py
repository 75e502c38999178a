"""Headless ledger explorer engine."""
