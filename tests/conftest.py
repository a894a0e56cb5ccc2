# tests/conftest.py
"""
Fixtures compartilhados para testes do mrflow.

Este módulo define fixtures reutilizáveis que fornecem:
- arquivos de configuração base mínimos e determinísticos
- coleções em memória para DSeqs
- arquivos de texto de entrada
- registro das tasks e formatos dummy (`tests.fixtures.tasks`)

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - I/O em disco usa sempre `tmp_path`
    - Tasks dummy são registradas uma única vez, na importação deste módulo

Limites explícitos:
    - Não substituir testes de integração
    - Não conter lógica condicional complexa
"""

import pytest

from tests.fixtures import tasks as _dummy_tasks  # noqa: F401  (registra tasks/formatos test.*)


@pytest.fixture
def resource_log():
    """Log global de recursos dos formatos instrumentados, zerado por teste."""
    _dummy_tasks.LOG.reset()
    yield _dummy_tasks.LOG
    _dummy_tasks.LOG.reset()


@pytest.fixture
def defaults_yaml(tmp_path):
    """
    Arquivo YAML de configuração base semelhante ao uso real.

    Aninhamento é achatado em chaves pontuadas por `load_job_conf`.
    """
    path = tmp_path / "mrflow.defaults.yaml"
    path.write_text(
        "mrflow:\n"
        "  reduce:\n"
        "    tasks: 2\n"
        "  output:\n"
        "    basename: part\n"
        "app:\n"
        "  threshold: 0.5\n"
        "  tags: [a, b]\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def local_yaml(tmp_path):
    path = tmp_path / "mrflow.local.yaml"
    path.write_text(
        "mrflow:\n"
        "  reduce:\n"
        "    tasks: 4\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def numbers():
    """Pares (chave, valor) determinísticos."""
    return [(f"k{i}", i) for i in range(10)]


@pytest.fixture
def text_input(tmp_path):
    """Diretório com dois arquivos de texto e um arquivo oculto ignorado."""
    d = tmp_path / "text-in"
    d.mkdir()
    (d / "a.txt").write_text("the quick brown fox\njumps over\n", encoding="utf-8")
    (d / "b.txt").write_text("the lazy dog\nthe end\n", encoding="utf-8")
    (d / "_SUCCESS").write_text("", encoding="utf-8")
    (d / ".hidden").write_text("ignored words\n", encoding="utf-8")
    return d
