"""railstack -- scaffold a dockerized Rails API project.

Generates a Rails API backend, an optional React (Vite) frontend and an
optional Sidekiq worker, wired together with Docker Compose and a makefile,
then commits the result to a fresh git repository.

Usage::

    railstack blog
    railstack shop --react-ts --sidekiq
"""

__version__ = "0.1.0"
