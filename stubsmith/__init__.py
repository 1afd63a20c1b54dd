"""stubsmith — build, merge and convert Ruby type interface stubs.

Reads Sorbet ``sig`` annotations from Ruby source, turns them into a
dialect-independent node tree, resolves duplicate declarations, and writes
the result as RBI or RBS.
"""

__version__ = "0.4.0"
