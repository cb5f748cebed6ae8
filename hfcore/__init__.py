"""Core domain logic for heart-failure regimen tracking.

This package contains the regimen history, conflict detection and diuretic
dose ledger logic, isolated from the UI and persistence layers so it is easy
to test and reason about.
"""
