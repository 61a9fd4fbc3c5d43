"""Pipeline orchestration and shared runtime support."""
