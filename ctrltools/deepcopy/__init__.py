"""Go type model and generation of DeepCopy, DeepCopyInto and DeepCopyObject methods."""

__all__ = ["gen", "gotypes", "traverse", "writer"]