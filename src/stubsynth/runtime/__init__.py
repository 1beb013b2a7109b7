"""
Reflection Adapters.

*   ``ghost``: :class:`SnapshotReflector` over a JSON universe snapshot.
*   ``live``: :class:`PythonReflector` over the running interpreter.
"""
