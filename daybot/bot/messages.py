# daybot/bot/messages.py

COMMANDS_HELP = """
Here are the commands you can use with the Daily Activities Manager Bot:

1. /start - Welcome message and instructions on how to use the bot.
2. /addtask [task] - Add a new task to your list. Example: /addtask Buy groceries
3. /listtasks - List all your tasks.
4. /remind [reminder text] at [time] - Set a new reminder. Example: /remind Meeting with team at 3:00 PM
5. /listreminders - List all your reminders.
6. /deletetask [task number] - Delete a specific task from your list. Example: /deletetask 2
7. /deletealltasks - Delete all tasks from your list.

Feel free to use these commands to manage your tasks and reminders. If you have any questions or need help, just ask!"""


def welcome(first_name: str) -> str:
    return (
        f"Hello {first_name}! Welcome to your Daily Activities Manager Bot! "
        f"Here are the available commands:\n{COMMANDS_HELP}"
    )


UNKNOWN_COMMAND = "Sorry, I didn't understand that command."
STORE_ERROR = "Sorry, something went wrong. Please try again in a moment."

USAGE_ADDTASK = "Usage: /addtask [task]. Example: /addtask Buy groceries"
USAGE_DELETETASK = "Usage: /deletetask [task number]. Example: /deletetask 2"
USAGE_REMIND = "Usage: /remind [reminder text] at [time]. Example: /remind Meeting with team at 3:00 PM"

NO_TASKS = "You have no tasks."
NO_REMINDERS = "You have no reminders."
INVALID_TASK_NUMBER = "Invalid task number."
ALL_TASKS_DELETED = "All tasks deleted."


def bad_time(time_text: str) -> str:
    return f'Sorry, I couldn\'t understand the time "{time_text}". Use a time like 3:00 PM.'
