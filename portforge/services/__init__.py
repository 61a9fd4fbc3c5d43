"""External service clients used by the deployment pipeline."""
