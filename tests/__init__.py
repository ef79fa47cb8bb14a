"""
Test Suite for Local Agent Core

This package contains all tests for the intent lifecycle:
- intent model & generator (confidence gate)
- policy engine (authorization gate)
- context gate & planner (situational gate)
- lifecycle orchestration, audit trail, configuration
"""
