from signal_swap_bot.main import run

run()
