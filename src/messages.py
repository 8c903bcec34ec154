# oboerukun - LINE List & Reminder Bot
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Reply texts sent by the bot.

``p`` is the command prefix the user types (おぼえるくん by default).
"""

from datetime import datetime
from typing import Optional

import pytz

from config import CIVIL_TZ
from reminders.recurrence import RepeatCadence
from reminders.time_parser import format_date_time, relative_time

CADENCE_LABELS = {
    RepeatCadence.DAILY: "毎日",
    RepeatCadence.WEEKLY: "毎週",
    RepeatCadence.MONTHLY: "毎月",
}

DB_ERROR = "ごめん！何かエラーが起きちゃった😵\nもう一度試してみてくれる？"


def bullet_list(lines: list[str], indent: str = "") -> str:
    return "\n".join(f"{indent}・{line}" for line in lines)


def numbered_list(lines: list[str]) -> str:
    return "\n".join(f"{i}. {line}" for i, line in enumerate(lines, start=1))


def cadence_label(cadence: RepeatCadence) -> str:
    return CADENCE_LABELS.get(cadence, "")


# =============================================================================
# General
# =============================================================================


def help_text(p: str) -> str:
    return (
        f"やっほー！{p}だよ〜🤖\n"
        "リストとリマインダーのお手伝いをするから任せて！✨\n\n"
        "【リストの使い方】\n"
        f"• {p} [リスト名] 追加 → アイテムを追加\n"
        f"• {p} [リスト名] → リストの中身を表示\n"
        f"• {p} [リスト名] 削除 → リスト全体を削除\n"
        f"• {p} [リスト名] [アイテム名] 削除 → 1つのアイテムを削除\n"
        f"• {p} 一覧 → 全リスト一覧\n\n"
        "【リマインダー】\n"
        f"• {p} リマインド → リマインダーの使い方\n\n"
        f"• {p} bye → 退室（寂しいけど...😢）\n\n"
        f"【例】「{p} 買い物リスト 追加」\n"
        "→ 何を追加するか聞くから改行で区切って送ってね！\n\n"
        f"困ったときはいつでも「{p}」って呼んでね😊"
    )


def farewell(p: str) -> str:
    return f"さようなら〜👋 また呼んでくれたら嬉しいな！\n{p}はいつでも君のリスト管理を待ってるよ✨"


def unknown_command(p: str) -> str:
    return f"うーん、ちょっとよくわからなかった😅\n「{p}」だけ送ると使い方を詳しく教えるよ〜📚"


# =============================================================================
# Lists
# =============================================================================


def no_lists(p: str) -> str:
    return (
        "まだリストがないみたい📝\n"
        f"「{p} [リスト名] 追加」でリストを作ってみよう！\n\n"
        f"例：{p} 買い物リスト 追加"
    )


def list_names(p: str, names: list[str]) -> str:
    return (
        f"現在のリスト一覧だよ〜📋\n\n{bullet_list(names)}\n\n"
        f"各リストの中身を見たいときは「{p} [リスト名]」って送ってね！"
    )


def list_empty(p: str, list_name: str) -> str:
    return f"「{list_name}」はまだ空っぽだよ〜📝\n「{p} {list_name} 追加」でアイテムを入れてみよう！"


def list_contents(p: str, list_name: str, items: list[str]) -> str:
    return (
        f"【{list_name}】の中身だよ✨\n\n{bullet_list(items)}\n\n"
        f"何か追加するなら「{p} {list_name} 追加」\n"
        f"特定のアイテムを消すなら「{p} {list_name} [アイテム名] 削除」だよ！"
    )


def ask_for_items(list_name: str) -> str:
    return (
        f"{list_name}に追加したいものを教えてね〜📝\n"
        "改行で区切って複数のアイテムを一度に追加できるよ！\n\n"
        "例：\nネギ\nキャベツ\nひき肉"
    )


def items_added(p: str, list_name: str, items: list[str]) -> str:
    return (
        f"やったね！{list_name}に追加完了だよ✨\n\n"
        f"【追加されたアイテム】\n{bullet_list(items)}\n\n"
        f"「{p} {list_name}」で全部の中身も確認できるよ！"
    )


def no_items_given(p: str) -> str:
    return f"おや？アイテムが入力されなかったみたい🤔\nもう一度「{p} [リスト名] 追加」でやり直してね！"


LIST_VANISHED = "あれ？リストが見つからなかった😅\nもう一度試してみてね！"


def list_deleted(list_name: str) -> str:
    return f"「{list_name}」を完全に削除したよ🗑️\nまた新しいリストが必要になったらいつでも作ってね！"


def list_not_found(p: str, list_name: str) -> str:
    return f"あれ？「{list_name}」が見つからなかった🤔\n「{p} 一覧」で確認してみて！"


def item_deleted(list_name: str, item: str, remaining: list[str]) -> str:
    return f"よし！「{item}」を削除したよ🗑️\n\n【{list_name}】の最新の中身：\n{bullet_list(remaining)}"


def item_deleted_list_empty(p: str, list_name: str, item: str) -> str:
    return (
        f"「{item}」を削除したら、{list_name}が空になっちゃった😅\n"
        f"新しいアイテムを追加するなら「{p} {list_name} 追加」だよ！"
    )


def item_not_found(p: str, list_name: str, item: str) -> str:
    return f"あれ？「{item}」が{list_name}に見つからなかった🤔\n「{p} {list_name}」で中身を確認してみて！"


# =============================================================================
# Reminders
# =============================================================================


def reminder_help(p: str) -> str:
    return (
        "リマインダーの使い方だよ⏰\n\n"
        f"• {p} リマインド [名前] [日付] [時刻] [内容] → 登録\n"
        f"• {p} リマインド [名前] 変更 [日付] [時刻] [内容] → 変更\n"
        f"• {p} リマインド [名前] 削除 → 削除\n"
        f"• {p} リマインド 削除 → 番号を選んでまとめて削除\n"
        f"• {p} リマインド 一覧 → 予定の一覧\n"
        f"• {p} リマインド 履歴 → 完了したリマインダー\n\n"
        "【日付】今日 明日 明後日 来週 再来週 3日後 15日 12月25日 2025年12月25日\n"
        "【時刻】朝 昼 午後 夕方 夜 深夜 9時 15時30分 15:30（省略すると9時）\n"
        "【繰り返し】内容に「毎日」「毎週」「毎月」を入れてね\n\n"
        f"例：{p} リマインド ゴミ出し 明日 朝 毎週 燃えるゴミ"
    )


def _schedule_line(
    reminder: dict, now: Optional[datetime] = None, civil_tz: pytz.BaseTzInfo = CIVIL_TZ
) -> str:
    cadence = RepeatCadence.from_value(reminder.get("repeat_pattern"))
    label = cadence_label(cadence)
    when = format_date_time(reminder["remind_at"], now, civil_tz)
    return f"{when}（{label}）" if label else when


def reminder_line(
    reminder: dict, now: Optional[datetime] = None, civil_tz: pytz.BaseTzInfo = CIVIL_TZ
) -> str:
    return f"{reminder['reminder_name']}：{_schedule_line(reminder, now, civil_tz)}"


def reminder_created(
    reminder: dict, now: Optional[datetime] = None, civil_tz: pytz.BaseTzInfo = CIVIL_TZ
) -> str:
    return (
        f"リマインダー「{reminder['reminder_name']}」を登録したよ⏰\n\n"
        f"【日時】{_schedule_line(reminder, now, civil_tz)}（{relative_time(reminder['remind_at'], now)}）\n"
        f"【内容】{reminder['message']}"
    )


def reminder_updated(
    reminder: dict, now: Optional[datetime] = None, civil_tz: pytz.BaseTzInfo = CIVIL_TZ
) -> str:
    return (
        f"リマインダー「{reminder['reminder_name']}」を変更したよ✏️\n\n"
        f"【日時】{_schedule_line(reminder, now, civil_tz)}（{relative_time(reminder['remind_at'], now)}）\n"
        f"【内容】{reminder['message']}"
    )


def reminder_exists(p: str, name: str) -> str:
    return (
        f"「{name}」っていうリマインダーはもうあるよ🤔\n"
        f"変えたいときは「{p} リマインド {name} 変更 [日付] [時刻] [内容]」だよ！"
    )


def reminder_not_found(p: str, name: str) -> str:
    return f"あれ？「{name}」っていうリマインダーが見つからなかった🤔\n「{p} リマインド 一覧」で確認してみて！"


def reminder_deleted(name: str) -> str:
    return f"リマインダー「{name}」を削除したよ🗑️"


def reminder_usage_error(p: str) -> str:
    return f"日付を教えてね📅\n例：{p} リマインド 会議 明日 15時 資料を持っていく"


def no_reminders(p: str) -> str:
    return f"リマインダーはまだないよ⏰\n「{p} リマインド」で使い方を見てみてね！"


def categorized_reminders(
    categorized, now: Optional[datetime] = None, civil_tz: pytz.BaseTzInfo = CIVIL_TZ
) -> str:
    sections = []
    if categorized.active:
        lines = [reminder_line(r, now, civil_tz) for r in categorized.active]
        sections.append("【予定】\n" + bullet_list(lines))
    if categorized.pending:
        lines = [reminder_line(r, now, civil_tz) for r in categorized.pending]
        sections.append("【通知済み】\n" + bullet_list(lines))
    if categorized.completed:
        sections.append(
            "【完了】\n" + bullet_list([r["reminder_name"] for r in categorized.completed])
        )
    return "リマインダー一覧だよ⏰\n\n" + "\n\n".join(sections)


def completed_history(
    reminders: list[dict], now: Optional[datetime] = None, civil_tz: pytz.BaseTzInfo = CIVIL_TZ
) -> str:
    if not reminders:
        return "完了したリマインダーはまだないよ📭"
    lines = [f"{r['reminder_name']}（{format_date_time(r['remind_at'], now, civil_tz)}）" for r in reminders]
    return f"最近完了したリマインダーだよ✅\n\n{bullet_list(lines)}"


def choose_reminders(
    reminders: list[dict], now: Optional[datetime] = None, civil_tz: pytz.BaseTzInfo = CIVIL_TZ
) -> str:
    lines = [reminder_line(r, now, civil_tz) for r in reminders]
    return (
        "削除したいリマインダーの番号を送ってね🗑️\n\n"
        f"{numbered_list(lines)}\n\n"
        "例：1 3"
    )


def reminders_deleted(count: int) -> str:
    return f"リマインダーを{count}件削除したよ🗑️"


NO_VALID_NUMBERS = "番号が見つからなかったよ🤔\nもう一度最初からやり直してね！"


def snoozed(
    minutes: int,
    remind_at: datetime,
    now: Optional[datetime] = None,
    civil_tz: pytz.BaseTzInfo = CIVIL_TZ,
) -> str:
    if minutes % 60 == 0:
        span = f"{minutes // 60}時間後"
    else:
        span = f"{minutes}分後"
    return f"了解！{span}（{format_date_time(remind_at, now, civil_tz)}）にもう一度お知らせするね⏰"


REMINDER_COMPLETED = "お疲れさま！リマインダーを完了にしたよ✅"
REMINDER_GONE = "そのリマインダーはもう見つからなかったよ🤔"


def delivery(message: str, lists: list[dict]) -> str:
    """Text pushed when a reminder fires, with the contents of related lists."""
    text = f"⏰ リマインダー\n\n{message}"
    if lists:
        text += "\n\n📋 関連リスト\n"
        for lst in lists:
            items = bullet_list([item["item_text"] for item in lst["items"]], indent="  ")
            text += f"\n【{lst['list_name']}】\n{items}\n"
    return text


# =============================================================================
# Cleanup
# =============================================================================


def cleanup_notice(reminder_count: int, list_count: int) -> str:
    return (
        "🧹 データのクリーンアップ\n\n"
        "2ヶ月以上使われていないデータが見つかりました：\n\n"
        f"【リマインダー】{reminder_count}件\n"
        f"【リスト】{list_count}件\n\n"
        "削除してデータベースを整理しますか？"
    )


def cleanup_deleted_notice(count: int) -> str:
    return (
        "🗑️ 自動クリーンアップ完了\n\n"
        f"1ヶ月間使われなかったデータを{count}件削除しました。\n\n"
        "データベースがスッキリしたよ✨"
    )


def cleanup_done(reminder_count: int, list_count: int) -> str:
    return f"整理完了！リマインダー{reminder_count}件、リスト{list_count}件を削除したよ🧹"


def cleanup_postponed() -> str:
    return "了解！1ヶ月そのままにしておくね⏰"


def choose_cleanup(reminders: list[dict], lists: list[dict]) -> str:
    lines = [f"⏰ {r['reminder_name']}" for r in reminders]
    lines += [f"📋 {lst['list_name']}" for lst in lists]
    return (
        "削除したいものの番号を送ってね🧹\n\n"
        f"{numbered_list(lines)}\n\n"
        "例：1 3"
    )


CLEANUP_NOTHING_LEFT = "対象のデータはもう残っていないみたい✨"
