"""Test support: fakes and record builders shared across test packages."""
