"""
Learning Agent - Console Application

Entry point for the learning assistant. A thin REPL over the chat service:
plain lines go to the agent, slash commands run assessments, show status
and manage the session.

Commands:
    /assess <resume.pdf>   Assess a PDF resume
    /report                Print the current assessment report
    /plan                  Generate (or reuse) an improvement plan
    /status                Show the learner's phase and health
    /llm                   Toggle real-LLM mode (Gemini with function calling)
    /history               Show this session's turns
    /reset                 Clear all learner data
    /quit                  Exit
"""

import json
import logging
from typing import Any, Dict, List

from clients import ProfileStore
from config import PROFILE_STORE_PATH, GEMINI_MODEL, configure_logging
from errors import AgentCoreError
from services import AssessmentService, AssessmentInput, ChatService, ChatResponse
from tools import ToolExecutor, get_tool_registry

logger = logging.getLogger(__name__)

BANNER = "🎓 学习助手已就绪。输入问题开始对话，输入 /help 查看命令，/quit 退出。"


# ============================================================================
# RENDERING
# ============================================================================

def render_response(response: ChatResponse) -> None:
    print(f"\n🤖 {response.message}")
    if response.tools_used:
        print(f"   🔧 {', '.join(response.tools_used)}")
    if response.suggestions:
        print("   💡 建议：")
        for suggestion in response.suggestions:
            print(f"      - {suggestion}")
    print()


def render_status(chat_service: ChatService) -> None:
    status = chat_service.get_system_status().to_dict()
    print(json.dumps(status, ensure_ascii=False, indent=2))


# ============================================================================
# COMMANDS
# ============================================================================

def handle_command(
    command: str,
    argument: str,
    chat_service: ChatService,
    assessment_service: AssessmentService,
    store: ProfileStore,
    session: Dict[str, Any],
) -> bool:
    """
    Run a slash command.

    Returns:
        False when the session should end
    """
    if command == "/quit":
        return False

    if command == "/help":
        print(__doc__)
    elif command == "/assess":
        if not argument:
            print("用法：/assess <简历PDF路径>")
        else:
            assessment = assessment_service.execute_assessment(AssessmentInput(type="resume_pdf", content=argument))
            print(f"✅ 评估完成，总分 {assessment['overall_score']}/100")
    elif command == "/report":
        print(assessment_service.export_report())
    elif command == "/plan":
        plan = assessment_service.generate_improvement_plan()
        print(json.dumps(plan, ensure_ascii=False, indent=2))
    elif command == "/status":
        render_status(chat_service)
    elif command == "/llm":
        session["use_real_llm"] = not session["use_real_llm"]
        print(f"🤖 真实 LLM 模式（{GEMINI_MODEL}）：{'开启' if session['use_real_llm'] else '关闭'}")
    elif command == "/history":
        for interaction in chat_service.get_interaction_history():
            print(f"[{interaction['timestamp']}] {interaction['user_message']} -> {interaction['tools_used']}")
    elif command == "/reset":
        store.reset()
        chat_service.clear_interaction_history()
        session["chat_history"] = []
        print("🗑️  数据已清空")
    else:
        print(f"未知命令：{command}")
    return True


def handle_user_input(user_message: str, chat_service: ChatService, session: Dict[str, Any]) -> None:
    chat_history: List[Dict[str, str]] = session["chat_history"]
    context = {"use_real_llm": session["use_real_llm"], "chat_history": list(chat_history)}

    response = chat_service.process_message(user_message, context)
    render_response(response)

    chat_history.append({"type": "user", "content": user_message})
    chat_history.append({"type": "agent", "content": response.message})


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Main application entry point."""
    configure_logging()

    store = ProfileStore(PROFILE_STORE_PATH)
    tool_executor = ToolExecutor(get_tool_registry(store), store=store)
    chat_service = ChatService(tool_executor, store)
    assessment_service = AssessmentService(store, tool_executor=tool_executor)
    session = {"use_real_llm": False, "chat_history": []}

    print(BANNER)
    while True:
        try:
            line = input("👤 > ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not line:
            continue

        if line.startswith("/"):
            command, _, argument = line.partition(" ")
            try:
                if not handle_command(command, argument.strip(), chat_service, assessment_service, store, session):
                    break
            except (AgentCoreError, ValueError, FileNotFoundError) as e:
                logger.error(f"❌ Command {command} failed: {e}")
                print(f"❌ {e}")
            continue

        handle_user_input(line, chat_service, session)

    print("👋 再见！")


if __name__ == "__main__":
    main()
