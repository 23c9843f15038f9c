from edu_gateway.models import Subject
from edu_gateway.providers.base import ChatMessage, GenerationMode, GenerationRequest


def build_grading_request(subject: Subject, student_name: str, content: str) -> GenerationRequest:
    """Homework grading: a score and a short encouraging comment, as a JSON object."""
    system = f"你是一位经验丰富、和蔼可亲的小学{subject.value}老师。"
    user = f"""学生姓名：{student_name}。
作业内容/答案：
"{content}"

请根据作业内容进行专业批改。
1. 给出一个合理的预估分数（0-100）。数学题请严格检查计算，作文请关注文采和逻辑。
2. 给出一段50字左右的评语：语气温暖、鼓励，指出具体的优点，再温柔地指出不足之处。

请严格以JSON格式返回，不要包含任何其他文字：
{{
  "score": number,
  "feedback": "string"
}}"""
    return GenerationRequest(
        messages=[
            ChatMessage(role="system", content=system),
            ChatMessage(role="user", content=user),
        ],
        mode=GenerationMode.STRUCTURED,
    )
