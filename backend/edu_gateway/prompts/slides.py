from typing import Sequence

from edu_gateway.models import Subject
from edu_gateway.providers.base import ChatMessage, GenerationMode, GenerationRequest


def build_slides_request(
    topic: str, objectives: Sequence[str], subject: Subject
) -> GenerationRequest:
    goals = "；".join(objectives) or "按课题自行提炼"
    system = f"你是一名专业的小学{subject.value}教师和PPT设计专家。"
    user = f"""请为课题 "{topic}" 设计一套8-12页的教学PPT大纲。教学目标：{goals}。

设计要求：
1. 每一页生成一个英文 visualPrompt：
   - 封面页："Masterpiece, 3D abstract composition related to {topic}, cinematic lighting, high detail, warm colors"
   - 内容页："Soft educational background pattern, minimalist, {subject.name.lower()} elements, light colors, ample whitespace for text"
2. 内容精炼，每页不超过4个要点。
3. 结构：第1页封面（TITLE）；第2页教学目标；中间为核心知识点；倒数第2页课堂互动；最后一页总结与作业（CONCLUSION）。

请严格返回JSON数组：
[
  {{
    "layout": "TITLE" | "SECTION" | "CONTENT" | "TWO_COLUMN" | "CONCLUSION",
    "title": "页面标题",
    "content": ["要点1", "要点2"],
    "notes": "演讲备注",
    "visualPrompt": "Detailed English description for image generation"
  }}
]"""
    return GenerationRequest(
        messages=[
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=user),
        ],
        mode=GenerationMode.STRUCTURED,
    )
