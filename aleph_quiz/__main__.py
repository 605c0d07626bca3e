from aleph_quiz.cli import main

main()
