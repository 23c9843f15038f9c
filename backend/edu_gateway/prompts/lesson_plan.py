import json
from typing import Optional

from edu_gateway.models import Subject
from edu_gateway.providers.base import ChatMessage, GenerationMode, GenerationRequest

DEFAULT_TEXTBOOK = "通用小学标准教材"


def build_lesson_plan_request(
    topic: str, subject: Subject, textbook_context: Optional[str] = None
) -> GenerationRequest:
    context = textbook_context or DEFAULT_TEXTBOOK
    shape = {
        "topic": topic,
        "textbookContext": textbook_context or "通用",
        "objectives": ["目标1", "目标2", "目标3"],
        "keyPoints": ["重点1", "难点1"],
        "process": [
            {"phase": "一、激趣导入", "duration": "5分钟", "activity": "老师怎么说，学生怎么做……"},
            {"phase": "二、探究新知", "duration": "15分钟", "activity": "……"},
        ],
        "blackboard": ["主标题", "左侧要点", "右侧绘图"],
        "homework": "详细的分层作业描述",
    }
    system = f"你是一位全国特级{subject.value}教师。"
    user = f"""请基于"{context}"，针对"{topic}"这一单元/课题，设计一份完整的深度教学方案，包含：
1. 教学目标（知识与技能、过程与方法、情感态度价值观）
2. 教学重难点
3. 教学过程（精确到分钟的脚本，包含师生互动、提问设计、活动安排）
4. 板书设计
5. 分层作业设计

请严格返回如下结构的JSON对象：
{json.dumps(shape, ensure_ascii=False, indent=2)}"""
    return GenerationRequest(
        messages=[
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=user),
        ],
        mode=GenerationMode.STRUCTURED,
    )
