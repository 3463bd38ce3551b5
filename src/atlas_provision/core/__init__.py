# src/atlas_provision/core/__init__.py
"""
Core do Atlas Provision.

Este pacote contém a implementação canônica do motor de composição e
provisionamento declarativo: muitos módulos independentes declaram
opções tipadas e contribuem valores; o core resolve uma configuração
única e consistente e a materializa como arquivos, serviços e ações
únicas de bootstrap.

Componentes principais:
    - options      → registry de slots, coleta de contribuições e resolução
    - validation   → asserções e warnings sobre a configuração resolvida
    - plan         → templates, Actions e interface de execução (runner)
    - engine       → planejamento (DAG) e execução do plano
    - state        → estado persistido, bootstrap idempotente e lock do pass
    - config       → settings do engine, definições do usuário, merge e hashing
    - traceability → Manifest e Event Log de cada pass
    - provision    → orquestração `evaluate` / `provision`

Princípios fundamentais:
    - Nenhuma decisão silenciosa: conflitos e violações são erros explícitos
    - A mesma entrada produz sempre a mesma configuração e o mesmo plano
    - Efeitos colaterais acontecem apenas na execução do plano

Limites explícitos:
    - Não renderiza formatos de arquivo específicos (templates são opacos)
    - Não implementa transporte remoto nem gerenciadores de serviço além
      do `systemctl` local
"""
