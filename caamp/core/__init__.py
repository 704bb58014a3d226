"""Transactional orchestration over provider config files."""
