# src/mrflow/core/config/errors.py
"""
Exceções canônicas da camada de configuração do mrflow.

Este módulo define a hierarquia oficial de exceções levantadas durante o
acesso tipado à configuração de jobs (`JobConf`), o carregamento de
arquivos de configuração base e a resolução de componentes registrados.

Princípios fundamentais:
    - Exceções são tipadas e semânticas
    - Erros de configuração são locais e levantados no ponto de acesso
    - Nenhum erro de configuração toca o cluster

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigurationError`
    - Nenhuma exceção deste módulo representa falha de execução de job

Limites explícitos:
    - Não executa jobs
    - Não realiza fallback ou recovery
"""


class ConfigurationError(Exception):
    """
    Exceção base para erros de configuração.

    Cobre chaves inválidas, ausentes ou com tipo incompatível, além de
    falhas estruturais no carregamento de arquivos de configuração.

    Limites explícitos:
        - Não representa falha de execução de job
        - Não representa falha de I/O de fontes ou destinos locais
    """


class MissingConfigKeyError(ConfigurationError):
    """Chave obrigatória ausente na configuração (sem default informado)."""


class ConfigValueTypeError(ConfigurationError):
    """
    Valor com tipo incompatível para a chave acessada.

    Levantada tanto na escrita (`JobConf.set` com valor não suportado)
    quanto na leitura tipada (`get_int`, `get_bool`, ...).
    """


class UnknownComponentError(ConfigurationError):
    """Identificador de componente (formato, task, sink, codec) não registrado."""


class DefaultsNotFoundError(ConfigurationError):
    """
    Arquivo de configuração base (defaults) não encontrado.

    Invariantes:
        - Sem defaults não existe configuração base válida

    Limites explícitos:
        - Não tenta inferir ou criar defaults automaticamente
    """


class UnsupportedConfigFormatError(ConfigurationError):
    """
    Formato de arquivo de configuração não suportado pelo loader.

    Formatos suportados:
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigurationError):
    """Conteúdo raiz do arquivo de configuração não é um dicionário."""


class ConfigTypeConflictError(ConfigurationError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"mrflow": {"reduce": {"tasks": 2}}}
        - override: {"mrflow": {"reduce": "two"}}

    Invariantes:
        - Nenhum merge parcial é produzido em caso de conflito
    """
