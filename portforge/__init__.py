"""portforge - generate personal portfolio sites and deploy them to GitHub and Vercel."""

__version__ = "0.1.0"
