# src/stepflow/core/__init__.py
"""
Core do StepFlow.

Este pacote reúne as responsabilidades essenciais para compor e executar
pipelines de Steps no estilo middleware.

Componentes principais:
    - pipeline   → contrato de Step, variantes, condições, contexto e registry
    - engine     → compilação de especificações e execução
    - resilience → decisões e estratégias de recuperação
    - tracing    → contrato de Observer e tracers
    - config     → carregamento, merge, hashing e interpretação de configuração

Princípios fundamentais:
    - Erros estruturais são detectados no build
    - Falhas de Steps são tratadas como dados pela camada de resiliência
    - Nenhum estado global: registries são instâncias explícitas
"""
