import argparse
import uuid

import uvicorn

from agents import create_engines
from core.config import load_config
from core.errors import InvalidInputError
from core.log import setup_logging
from llm.client import LLMClient
from memory import create_memory
from server.app import create_app


def text_repl(agent: str, config_path: str) -> None:
    """Text-only REPL against one agent engine, without the HTTP layer."""
    config = load_config(config_path)
    setup_logging(config.logging.level)

    _, capture_log = create_memory(config)
    llm_client = LLMClient(config.llm) if config.llm.enabled else None
    engines = create_engines(config, llm_client=llm_client, capture_log=capture_log)
    if agent not in engines:
        print(f"Unknown agent: {agent}. Available: {', '.join(engines)}")
        return

    engine = engines[agent]
    session_id = str(uuid.uuid4())
    if llm_client:
        print(f"LLM: {llm_client.health()}")
    print(f"{engine.profile.display_name} ({engine.profile.specialization})")
    print("Commands: /history, /analytics, /clear, quit")
    print("-" * 40)

    while True:
        user_input = input("\nYou: ").strip()
        if user_input.lower() in ("quit", "exit", "q"):
            break
        if user_input == "/history":
            for item in engine.history(session_id):
                print(f"  [{item['intent']}] {item['message']}")
            continue
        if user_input == "/analytics":
            summary = engine.summary(session_id)
            print(f"  Interactions: {summary['total_interactions']}")
            print(f"  Dominant today: {summary['dominant_intent_today']}")
            print(f"  Distribution: {summary['intent_distribution']}")
            continue
        if user_input == "/clear":
            engine.clear(session_id)
            print("  History cleared")
            continue

        try:
            result = engine.chat(session_id, user_input)
        except InvalidInputError as e:
            print(f"  {e.message}")
            continue

        print(f"\n{engine.profile.display_name}: {result.payload.text}")
        print(f"  [Intent: {result.intent} | {result.payload.processing_time}s]")

    engine.end_session(session_id)
    if capture_log:
        capture_log.close()


def server(config_path: str) -> None:
    """Start the FastAPI server with the engines built from ``config_path``."""
    config = load_config(config_path)
    app = create_app(config)
    print(f"AgentDesk server: http://{config.server.host}:{config.server.port}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        reload=False,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="AgentDesk agent server")
    parser.add_argument("--text", action="store_true", help="chat with one agent in the terminal")
    parser.add_argument("--agent", default="authwise", help="agent for --text mode")
    parser.add_argument("--config", default="config/default.toml")
    args = parser.parse_args()

    if args.text:
        text_repl(args.agent, args.config)
    else:
        server(args.config)


if __name__ == "__main__":
    main()
