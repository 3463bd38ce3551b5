# src/atlas_provision/core/config/__init__.py

"""
Camada de configuração do Atlas Provision.

Este pacote contém os utilitários responsáveis por carregar settings do
engine, ler definições do usuário, mesclar estruturas de configuração e
identificar configurações resolvidas.

Responsabilidades do pacote:
    - Carregamento de settings (defaults + overrides locais) → `loader`
    - Leitura de definições do usuário por caminho de slot → `definitions`
    - Deep-merge de settings e merge de records ATTRS → `merge`
    - Hash canônico de configuração e digest de conteúdo → `hashing`

Princípios fundamentais:
    - Nenhuma heurística implícita durante merge
    - Overrides são sempre explícitos
    - A mesma entrada sempre produz a mesma configuração final

Limites explícitos:
    - Não resolve prioridades nem condições (ver `core.options`)
    - Não executa o plano
"""
