from typing import Sequence

from edu_gateway.providers.base import ChatMessage, GenerationMode, GenerationRequest

QUIZ_SIZE = 10


def build_quiz_request(topic: str, key_points: Sequence[str]) -> GenerationRequest:
    points = "，".join(key_points)
    user = f"""基于课题 "{topic}" 和重难点：{points}，
设计一份包含 {QUIZ_SIZE} 道题目的课后练习闯关卷。

要求：
1. 包含 3 道基础题、4 道进阶题、3 道挑战题。
2. 题目生动有趣，贴近小学生生活，避免枯燥的计算或死记硬背。
3. 选项要有干扰性，解析要清晰。

请严格返回JSON数组，correctAnswer 为正确选项的下标（0-3）：
[
  {{
    "difficulty": "基础" | "进阶" | "挑战",
    "question": "题目内容",
    "options": ["选项A", "选项B", "选项C", "选项D"],
    "correctAnswer": 0,
    "explanation": "解析内容"
  }}
]"""
    return GenerationRequest(
        messages=[ChatMessage(role="user", content=user)],
        mode=GenerationMode.STRUCTURED,
    )
