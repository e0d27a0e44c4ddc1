#!/usr/bin/env python3

##############################################
#                                            #
#         COGENT CODING AGENT REPL           #
#                                            #
##############################################

import os
from dotenv import load_dotenv
from cogent.prebuilt import build_agent
from cogent.reasoner.react import ReasoningObserver
from utils.cli import confirm_tool_call, read_user_goal, print_result
from utils.load_config import load_config

from utils.logger import get_logger, init_logger
logger = get_logger(__name__)


def _progress_observer() -> ReasoningObserver:
    return ReasoningObserver(
        on_step=lambda step, max_steps: print(f"… step {step}/{max_steps}", flush=True),
        on_thought=lambda thought: print(f"💭 {thought[:200]}", flush=True),
        on_tool_call=lambda call: print(f"🔧 {call.name}({call.arguments})", flush=True),
        on_tool_result=lambda call, result: print(f"{'⚠️' if result.is_error else '✔️'}  {call.name}", flush=True),
    )


def main() -> None:
    init_logger("config.json")
    load_dotenv()

    config = load_config(os.getenv("COGENT_CONFIG"))
    agent = build_agent(
        config,
        cwd=os.getenv("COGENT_WORKSPACE", os.getcwd()),
        approver=confirm_tool_call,
        observer=_progress_observer(),
    )
    logger.info("🤖 Agent started. Enter tasks to get started…", policy=agent.approval.policy.value)

    while True:
        task = None
        try:
            task = read_user_goal()
            if not task:  # Skip empty inputs
                continue

            result = agent.solve(task)
            print_result(result)

        except KeyboardInterrupt:
            logger.info("🤖 Bye!")
            break

        except Exception as exc:
            logger.exception("solve_failed", task=task, error=str(exc))


if __name__ == "__main__":
    main()
