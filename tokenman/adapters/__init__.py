"""
Tokenman adapters — Implementações dos protocols de tokenman.protocols.

- orm: ORM (padrão em produção)
- memory: em memória, thread-safe (desenvolvimento e testes)
"""
