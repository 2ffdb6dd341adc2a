"""Testing utilities for code built on the retry loop.

- ScriptedOperation/ScriptedStep: Replay fixed Results, record attempts
- assert_result_equal: Field-by-field Result assertions
"""

from .scripted import Invocation, ScriptedOperation, ScriptedStep, assert_result_equal

__all__ = ["ScriptedOperation", "ScriptedStep", "Invocation", "assert_result_equal"]
