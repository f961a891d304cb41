from graph_assistant.cli import main

raise SystemExit(main())
