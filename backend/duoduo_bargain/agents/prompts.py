"""
Prompt templates for the bargainer and publisher personas.

WHAT: System instructions and the templated utterances the orchestrator sends
WHY: Consistent persona behavior and exact, testable message texts
HOW: Template strings with context injection
"""

from ..models.bargain import SenderRole
from ..utils.offers import format_price
from ..chat.types import ChatContext, ChatMessage


DEFAULT_SYSTEM_PROMPT = "你是一个友好的AI助手。"


def render_system_prompt(context: ChatContext | None) -> str:
    """
    Render the persona instruction for one side of the negotiation.

    The bargainer pushes toward the target price with reasons; the publisher
    defends the price but says "同意"/"成交" once terms are acceptable.
    """
    if context is None:
        return DEFAULT_SYSTEM_PROMPT

    publish_price = format_price(context.publish_price)
    target_price = format_price(context.target_price)

    if context.role is SenderRole.BARGAINER:
        return f"""你是一个砍价专家。你正在帮助用户砍价购买{context.product_name}。
- 商品原价：¥{publish_price}
- 目标价格：¥{target_price}
- 你的任务是礼貌地与卖家协商，争取以更低的价格购买商品。
- 你应该理性、有礼貌地进行砍价，给出合理的理由。
- 每次报价时，明确说明你愿意支付的价格。"""

    return f"""你是一个卖家。你的商品{context.product_name}正在被砍价。
- 商品原价：¥{publish_price}
- 买家想要以¥{target_price}购买
- 你的任务是维护价格，但也要表现出诚意。
- 如果买家的出价太低，礼貌地拒绝并说明理由。
- 如果可以接受的价格，可以表示"同意"或"成交"。"""


def build_chat_messages(
    message: str,
    context: ChatContext | None,
    history: list[ChatMessage] | None,
) -> list[ChatMessage]:
    """
    Assemble the message sequence sent to the chat endpoint.

    The endpoint has no system role, so the instruction goes first as a user turn,
    followed by the prior turns verbatim and the new utterance.
    """
    messages: list[ChatMessage] = [{"role": "user", "content": render_system_prompt(context)}]
    if history:
        messages.extend(history)
    messages.append({"role": "user", "content": message})
    return messages


def render_opening_offer(product_label: str, publish_price: float, target_price: float) -> str:
    """First bargainer utterance of a run."""
    return (
        f"你好，我对这个{product_label}很感兴趣，现在价格是¥{format_price(publish_price)}，"
        f"能不能便宜点？我希望能以¥{format_price(target_price)}购买。"
    )


def render_counter_offer(price: float) -> str:
    """Explicit counter-offer appended to a rebuttal."""
    return f" 现在能接受{format_price(price)}元吗？"


def render_rebuttal(publisher_reply: str, tracked_price: float, target_price: float) -> str:
    """Bargainer utterance answering the publisher's previous reply."""
    text = f"卖家说：{publisher_reply}"
    if tracked_price > target_price:
        text += render_counter_offer(tracked_price)
    return text


def render_publisher_turn(bargainer_reply: str) -> str:
    """Publisher utterance restating what the bargainer said."""
    return f"买家说：{bargainer_reply}"
