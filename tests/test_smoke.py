# tests/test_smoke.py
"""
Testes de sanidade estrutural (smoke tests) do mrflow.

Este módulo contém testes mínimos cujo único objetivo é garantir que:
- o pacote pode ser importado sem ciclos de importação
- os formatos embutidos são registrados na importação
- o ambiente de testes (pytest) está funcional

Invariantes:
    - Estes testes devem sempre passar em um setup correto
    - Não dependem de configuração, filesystem ou I/O

Limites explícitos:
    - Não testar lógica de jobs
    - Não acumular asserts funcionais
"""


def test_smoke():
    import mrflow
    from mrflow.io.formats import INPUT_FORMATS, OUTPUT_FORMATS

    assert mrflow.__version__
    assert {"mem", "text", "jsonl", "mux"} <= set(INPUT_FORMATS.names())
    assert {"text", "jsonl", "dux"} <= set(OUTPUT_FORMATS.names())
