"""Intermediate representation for Ruby type interfaces.

The IR sits between Ruby source (parsed with tree-sitter) and the emitted
stub dialects. It normalizes:
- Declarations (namespaces, methods, attributes, constants)
- Mixins (include/extend directives)
- Signatures (parameter and return types, overloads, blocks)
"""
