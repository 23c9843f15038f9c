from typing import Sequence

from edu_gateway.models import Subject
from edu_gateway.providers.base import ChatMessage, GenerationMode, GenerationRequest


def build_analysis_request(
    student_name: str, subject: Subject, recent_scores: Sequence[int]
) -> GenerationRequest:
    """Free-text tutoring report on a student's recent test scores."""
    scores = ", ".join(str(s) for s in recent_scores) or "暂无成绩"
    system = f"你是一位资深的{subject.value}教研组长。"
    user = f"""学生 {student_name} 最近的{subject.value}测验成绩为：{scores}。

请生成一份专业的"定点优化辅导分析报告"：
1. 成绩走势诊断：用专业的教学术语分析成绩波动情况。
2. 薄弱点推测：根据分数段推测学生可能在哪些知识模块存在短板。
3. 个性化提升方案：给出3条具体、可执行的学习建议。

不要使用Markdown标题语法（如 # 或 ##），直接使用加粗文本作为小标题。语气专业、客观且充满教育关怀。"""
    return GenerationRequest(
        messages=[
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=user),
        ],
        mode=GenerationMode.FREE_TEXT,
    )
