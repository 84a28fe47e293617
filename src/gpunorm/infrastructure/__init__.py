"""
Concrete tensors, native bindings, device contexts and normalization backends.
"""
