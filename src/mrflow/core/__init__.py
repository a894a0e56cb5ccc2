# src/mrflow/core/__init__.py
"""
Core do mrflow.

Componentes principais:
    - config       → JobConf, carregamento, merge e hashing de configuração
    - pipeline     → ConfigSteps, registros e tipos canônicos
    - engine       → grafo de jobs, planejamento e execução concorrente
    - traceability → RunManifest e Event Log

Princípios fundamentais:
    - Nenhuma decisão silenciosa: erros são tipados e levantados no ponto de origem
    - Configuração é sempre derivada (clone/diff/merge), nunca compartilhada entre jobs
"""
