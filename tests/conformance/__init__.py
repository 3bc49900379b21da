"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. test_atomicity.py - All-or-nothing transitions, rollback of collaborators
2. test_reentrancy.py - Mutual exclusion of in-flight operations
3. test_invariants.py - Solvency and non-negativity under random operation sequences

These tests use hypothesis for property-based testing.
"""
