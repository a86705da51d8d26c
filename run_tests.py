#!/usr/bin/env python3
"""
Main test runner for the Fusion compiler tests.

Author: xwest
"""

import sys
import os
import unittest

# Add the project root to the Python path
project_root = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, project_root)

def run_all_tests():
    """Run all Fusion compiler tests."""

    print("🚀 Fusion Compiler Test Suite")
    print("=" * 60)

    # Test if basic imports work
    try:
        from fusion import CompilationUnit, CompilationError, EvaluationError

        print("✅ All compiler modules imported successfully")
        print()

    except ImportError as e:
        print(f"❌ Failed to import compiler modules: {e}")
        return False

    # Test a simple compilation pipeline
    print("Testing simple compilation pipeline...")
    code = """
    func add(a: int, b: int) -> int {
        return a + b
    }

    let result = add(5, 10)
    result
    """

    unit = CompilationUnit.compile(code, "<pipeline>")
    print(f"  🔧 Parsed {len(unit.ast.items)} top-level items, "
          f"{len(unit.ast.expressions)} expressions")
    if unit.has_errors():
        print("     ❌ Unexpected diagnostics:")
        print(unit.format_diagnostics())
        return False
    print(f"  🔧 Resolved {len(unit.global_scope.variables)} variables, "
          f"{len(unit.global_scope.functions)} functions")

    try:
        value = unit.run()
    except EvaluationError as e:
        print(f"     ❌ {e}")
        return False
    if value != 15:
        print(f"     ❌ Expected 15, got {value!r}")
        return False
    print("  ✅ Pipeline produced 15")
    print()

    # Test error handling
    print("  ❌ Testing error handling...")
    error_unit = CompilationUnit.compile('let x: int = "not a number"\nlet y = undefined_variable')
    try:
        error_unit.run()
        print("     ❌ Error handling test failed: expected errors but got none")
        return False
    except CompilationError as e:
        print(f"     ✅ Error handling successful: caught {len(e.diagnostics)} expected errors")
    print()

    # Unit test modules
    print("Running unit tests...")
    print("-" * 60)
    suite = unittest.defaultTestLoader.discover(os.path.join(project_root, "tests"))
    result = unittest.TextTestRunner(verbosity=1).run(suite)
    print("-" * 60)

    if not result.wasSuccessful():
        print(f"❌ {len(result.failures)} failures, {len(result.errors)} errors")
        return False

    print(f"🎉 All {result.testsRun} tests PASSED!")
    return True

if __name__ == "__main__":
    success = run_all_tests()
    sys.exit(0 if success else 1)
