"""Application services: authentication and the dump dispatcher."""
