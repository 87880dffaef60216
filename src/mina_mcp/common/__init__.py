"""Shared configuration and logging."""
