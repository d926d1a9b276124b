"""Core domain logic for the wearable IOP monitor.

This package contains the measurement state machine and the risk/trend engine,
isolated from rendering, persistence and device pairing so it can be tested
without a UI harness.
"""
