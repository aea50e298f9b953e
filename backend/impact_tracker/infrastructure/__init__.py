"""Infrastructure implementations of the interfaces."""
