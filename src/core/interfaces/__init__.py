"""Core interfaces/abstractions.

Why:
- Defines contracts (Protocol) that concrete adapters implement.
- Inverts dependencies: the dispatcher depends on the contract, tests plug in
  fakes without an HTTP stack.
"""
