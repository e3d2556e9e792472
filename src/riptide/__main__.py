from riptide.cli.main import main

raise SystemExit(main())
