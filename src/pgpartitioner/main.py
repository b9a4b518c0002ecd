import argparse
import json
import logging
import os
from injector import Injector
from pgpartitioner.config.config import AppModule
from pgpartitioner.pgpartitioner import PgPartitioner


def handle_event(event: dict, injected_injector: Injector = None, debug=False, deadline_seconds=None):
    """
    Processa um evento ``{"action": ..., "data": {...}}``.
    - Recebe um 'injected_injector' opcional (IoC)
    - Se não for informado nenhum injector, cria um default com AppModule
    - Retorna a resposta com statusCode e body
    """
    if os.getenv("DEBUG", "false").lower() == "true":
        debug = True

    if injected_injector is not None:
        injector = injected_injector
    else:
        injector = Injector([AppModule()])

    logger = injector.get(logging.Logger)

    if debug:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    partitioner = PgPartitioner(injector=injector, deadline_seconds=deadline_seconds)
    return partitioner.process_event(event)


def main():
    parser = argparse.ArgumentParser(
        description="CLI para executar uma ação de manutenção de partições a partir de um payload JSON."
    )
    parser.add_argument(
        "-f", "--file",
        type=str,
        help="Caminho para o arquivo JSON com o evento ({\"action\": ..., \"data\": {...}})"
    )
    parser.add_argument(
        "-a", "--action",
        type=str,
        help="Ação a executar sem payload, ex.: run_maintenance"
    )
    parser.add_argument(
        "-d", "--deadline",
        type=float,
        default=None,
        help="Tempo máximo, em segundos, esperando por lock em cada alteração"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Ativa o modo verboso para exibir informações detalhadas"
    )
    args = parser.parse_args()

    if not args.file and not args.action:
        parser.error("informe --file ou --action")

    if args.file:
        try:
            with open(args.file, "r", encoding="UTF-8") as file:
                event = json.load(file)
        except FileNotFoundError:
            print(f"Erro: O arquivo '{args.file}' não foi encontrado.")
            return 1
        except json.JSONDecodeError:
            print("Erro: Formato JSON inválido.")
            return 1
    else:
        event = {"action": args.action, "data": {}}

    response = handle_event(event, debug=args.verbose, deadline_seconds=args.deadline)
    print(json.dumps(response, indent=2))
    return 0 if response["statusCode"] == 200 else 1


if __name__ == "__main__":
    raise SystemExit(main())
